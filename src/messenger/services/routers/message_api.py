from fastapi import status, Depends, APIRouter, Query
from fastapi.security import HTTPBasicCredentials
from dishka.integrations.fastapi import inject
from dishka import FromDishka
import logging

from ..models.message_api_models import *
from ..models.auth_api_models import StatusResponse
from messenger.core.gateways import UserGateway, MessageGateway
from .auth_api import AuthAPI


class MessageAPI:
    """
    Message API handler.

    Provides endpoints for posting, editing and deleting messages and for
    browsing chat history a page at a time, newest first.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        message_router: FastAPI router containing message endpoints
    """

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI,
    ):
        self.logger = logger
        self.auth_api = auth_api

        self._message_router = APIRouter(tags=["Messages"])
        self._register_endpoints()

    @property
    def message_router(self) -> APIRouter:
        return self._message_router

    def get_router(self) -> APIRouter:
        return self._message_router

    def _register_endpoints(self):
        @self.message_router.post(
            "/chats/{chat_id}/messages",
            response_model=MessageCreatedResponse,
            status_code=status.HTTP_201_CREATED
        )
        @inject
        async def send_message(
                chat_id: int,
                message_data: MessageSendRequest,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            sender = await self.auth_api.get_current_user(credentials, user_gateway)
            message_id = await message_gateway.post(sender, chat_id, message_data.text)
            return MessageCreatedResponse(id=message_id)

        @self.message_router.get("/chats/{chat_id}/messages", response_model=PageResponse)
        @inject
        async def browse_messages(
                chat_id: int,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                offset: int = Query(0, ge=0),
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            One page of chat history. Pass next_offset back to load earlier
            messages until exhausted is true.
            """
            requester = await self.auth_api.get_current_user(credentials, user_gateway)
            page = await message_gateway.history_page(chat_id, requester, offset)

            return PageResponse(
                messages=[MessageResponse(**msg.model_dump()) for msg in page.items],
                offset=page.offset,
                next_offset=page.next_offset,
                exhausted=page.exhausted
            )

        @self.message_router.patch("/messages/{message_id}", response_model=MessageResponse)
        @inject
        async def edit_message(
                message_id: int,
                message_data: MessageEditRequest,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            actor = await self.auth_api.get_current_user(credentials, user_gateway)
            message = await message_gateway.edit(actor, message_id, message_data.text)
            return MessageResponse(**message.model_dump())

        @self.message_router.delete("/messages/{message_id}", response_model=StatusResponse)
        @inject
        async def delete_message(
                message_id: int,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            actor = await self.auth_api.get_current_user(credentials, user_gateway)
            await message_gateway.delete(actor, message_id)
            return StatusResponse(status="deleted")

from fastapi import status, Depends, APIRouter
from fastapi.security import HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from messenger.core.gateways import UserGateway, ChatGateway
from messenger.core.exceptions import NotAMemberError
from ..models.chat_api_models import *
from ..models.auth_api_models import StatusResponse
from .auth_api import AuthAPI


class ChatAPI:
    """
    Chat creation, membership and deletion endpoints.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        chat_router: FastAPI router containing chat endpoints
    """
    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api

        self._chat_router = APIRouter(tags=["Chats"])
        self._register_endpoints()

    @property
    def chat_router(self) -> APIRouter:
        return self._chat_router

    def get_router(self) -> APIRouter:
        return self._chat_router

    def _register_endpoints(self):
        @self.chat_router.get("/chats", response_model=ChatsResponse)
        @inject
        async def browse_chats(
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            return ChatsResponse(chat_ids=await chat_gateway.list_chats_for(login))

        @self.chat_router.post("/chats", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def create_chat(
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            chat_id = await chat_gateway.create_chat(login)
            chat = await chat_gateway.get_chat(chat_id)
            return ChatResponse(**chat.model_dump(), members=[login])

        @self.chat_router.get("/chats/{chat_id}", response_model=ChatResponse)
        @inject
        async def get_chat(
                chat_id: int,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            if not await chat_gateway.is_member(login, chat_id):
                raise NotAMemberError(f"Chat {chat_id} does not exist or you do not belong to it")

            chat = await chat_gateway.get_chat(chat_id)
            members = await chat_gateway.list_members(chat_id)
            return ChatResponse(**chat.model_dump(), members=members)

        @self.chat_router.post("/chats/{chat_id}/members", response_model=ChatResponse)
        @inject
        async def add_member(
                chat_id: int,
                request_data: AddMemberRequest,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            Add a user to a chat. Only the chat initiator may do this; the
            third member turns a private chat into a group chat.
            """
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            chat = await chat_gateway.add_member(login, chat_id, request_data.login)
            members = await chat_gateway.list_members(chat_id)
            return ChatResponse(**chat.model_dump(), members=members)

        @self.chat_router.delete("/chats/{chat_id}", response_model=StatusResponse)
        @inject
        async def delete_chat(
                chat_id: int,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await chat_gateway.delete_chat(login, chat_id)
            return StatusResponse(status="deleted")

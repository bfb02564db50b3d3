from fastapi import status, Depends, APIRouter
from fastapi.security import HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from messenger.core.database import ListKind
from messenger.core.gateways import UserGateway, RelationshipGateway
from ..models.contact_api_models import *
from ..models.auth_api_models import StatusResponse
from .auth_api import AuthAPI


class ContactAPI:
    """
    Contact and block list endpoints of the current user.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        contact_router: FastAPI router containing contact endpoints
    """
    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api

        self._contact_router = APIRouter(tags=["Contacts"])

        self._register_endpoints()

    @property
    def contact_router(self) -> APIRouter:
        return self._contact_router

    def get_router(self) -> APIRouter:
        return self._contact_router

    @staticmethod
    async def _list_response(
            relationship_gateway: RelationshipGateway,
            owner: str,
            kind: ListKind
    ) -> ListMembersResponse:
        entries = await relationship_gateway.list_entries(owner, kind)
        return ListMembersResponse(
            members=[ListEntryResponse(login=user.login, status=user.status) for user in entries]
        )

    def _register_endpoints(self):
        @self.contact_router.get("/contacts", response_model=ListMembersResponse)
        @inject
        async def list_contacts(
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            return await self._list_response(relationship_gateway, owner, ListKind.CONTACT)

        @self.contact_router.post("/contacts", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def add_contact(
                request_data: ListMemberRequest,
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            Add a user to the contact list.

            Raises:
                UnknownUserError: target is not registered
                SelfReferenceError: target is the current user
                AlreadyBlockedError: target has to be unblocked first
                AlreadyContactError: target is already a contact
            """
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            await relationship_gateway.add_contact(owner, request_data.login)
            return StatusResponse(status="added")

        @self.contact_router.delete("/contacts/{login}", response_model=StatusResponse)
        @inject
        async def remove_contact(
                login: str,
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            await relationship_gateway.remove_contact(owner, login)
            return StatusResponse(status="removed")

        @self.contact_router.get("/blocked", response_model=ListMembersResponse)
        @inject
        async def list_blocked(
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            return await self._list_response(relationship_gateway, owner, ListKind.BLOCK)

        @self.contact_router.post("/blocked", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def add_blocked(
                request_data: ListMemberRequest,
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            Block a user. A current contact is moved to the block list.
            """
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            await relationship_gateway.add_blocked(owner, request_data.login)
            return StatusResponse(status="blocked")

        @self.contact_router.delete("/blocked/{login}", response_model=StatusResponse)
        @inject
        async def remove_blocked(
                login: str,
                user_gateway: FromDishka[UserGateway],
                relationship_gateway: FromDishka[RelationshipGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            owner = await self.auth_api.get_current_user(credentials, user_gateway)
            await relationship_gateway.remove_blocked(owner, login)
            return StatusResponse(status="removed")

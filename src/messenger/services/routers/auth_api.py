from fastapi import status, HTTPException, Depends, APIRouter
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from messenger.core.gateways import UserGateway
from messenger.core.exceptions import InvalidCredentialsError
from ..models.auth_api_models import *


class AuthAPI:
    """
    Registration, login check and account removal.

    Credentials travel as HTTP Basic on every request and are compared with
    the stored ones as they are. There is no session or token.

    Attributes:
        logger (logging.Logger): Logger instance
        security (HTTPBasic): HTTP Basic credentials scheme
        _auth_router (APIRouter): FastAPI router for authentication endpoints
    """
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.security = HTTPBasic()
        self._auth_router = APIRouter(tags=["Authentication"])
        self._register_endpoints()

    @property
    def auth_router(self) -> APIRouter:
        return self._auth_router

    def get_router(self) -> APIRouter:
        return self._auth_router

    async def get_current_user(
            self,
            credentials: HTTPBasicCredentials,
            user_gateway: UserGateway
    ) -> str:
        """
        Resolve the login behind a request.
        Args:
            credentials: Basic credentials sent with the request
            user_gateway: User persistence interface
        Returns:
            str: login of the authenticated user
        Raises:
            HTTPException: If login and password do not match a user
        """
        try:
            user = await user_gateway.authenticate(credentials.username, credentials.password)
        except InvalidCredentialsError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=e.detail,
                headers={"WWW-Authenticate": "Basic"},
            ) from e
        return user.login

    def _register_endpoints(self):
        @self.auth_router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def register(
                request_data: UserRegisterRequest,
                user_gateway: FromDishka[UserGateway]
        ):
            """
            Create a user with empty contact and block lists.
            """
            user = await user_gateway.register(
                login=request_data.login,
                password=request_data.password,
                phone=request_data.phone,
                status=request_data.status
            )
            return UserResponse(login=user.login, phone=user.phone, status=user.status)

        @self.auth_router.get("/me", response_model=UserResponse)
        @inject
        async def me(
                user_gateway: FromDishka[UserGateway],
                credentials: HTTPBasicCredentials = Depends(self.security)
        ):
            login = await self.get_current_user(credentials, user_gateway)
            user = await user_gateway.get_user(login)
            return UserResponse(login=user.login, phone=user.phone, status=user.status)

        @self.auth_router.patch("/me", response_model=UserResponse)
        @inject
        async def update_status(
                request_data: StatusUpdateRequest,
                user_gateway: FromDishka[UserGateway],
                credentials: HTTPBasicCredentials = Depends(self.security)
        ):
            """
            Set or clear the status shown in other users' contact and block lists.
            """
            login = await self.get_current_user(credentials, user_gateway)
            user = await user_gateway.set_status(login, request_data.status)
            return UserResponse(login=user.login, phone=user.phone, status=user.status)

        @self.auth_router.delete("/me", response_model=StatusResponse)
        @inject
        async def delete_account(
                user_gateway: FromDishka[UserGateway],
                credentials: HTTPBasicCredentials = Depends(self.security)
        ):
            """
            Delete the current account. Refused while the user still
            initiates chats; those have to be deleted first.
            """
            login = await self.get_current_user(credentials, user_gateway)
            await user_gateway.delete_account(login)
            self.logger.info("Account %s closed", login)
            return StatusResponse(status="deleted")

from dishka import Provider, Scope, provide
from typing import AsyncIterable
import logging

from messenger.config import Config, load_config
from messenger.core.db_manager import DatabaseManager
from messenger.core.gateways import UserGateway, RelationshipGateway, ChatGateway, MessageGateway

from messenger.services.routers import AuthAPI, ContactAPI, ChatAPI, MessageAPI

class AdaptersProvider(Provider):
    def __init__(self, config: Config | None = None):
        super().__init__()
        self._config = config

    @provide(scope=Scope.APP)
    def get_config(self) -> Config:
        return self._config or load_config(".env")

    @provide(scope=Scope.APP)
    def get_logger(self) -> logging.Logger:
        return logging.getLogger("messenger")

    @provide(scope=Scope.APP)
    async def get_db_manager(self, config: Config) -> AsyncIterable[DatabaseManager]:
        db_manager = DatabaseManager(config)
        await db_manager.initialize()
        await db_manager.create_tables()
        yield db_manager
        await db_manager.dispose()

class GatewaysProvider(Provider):
    @provide(scope=Scope.REQUEST)
    def get_user_gateway(
            self,
            db_manager: DatabaseManager,
            logger: logging.Logger
    ) -> UserGateway:
        return UserGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_relationship_gateway(
            self,
            db_manager: DatabaseManager,
            logger: logging.Logger
    ) -> RelationshipGateway:
        return RelationshipGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_chat_gateway(
            self,
            db_manager: DatabaseManager,
            logger: logging.Logger
    ) -> ChatGateway:
        return ChatGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_message_gateway(
            self,
            db_manager: DatabaseManager,
            chat_gateway: ChatGateway,
            logger: logging.Logger
    ) -> MessageGateway:
        return MessageGateway(db_manager, chat_gateway, logger)

class ServicesProvider(Provider):
    @provide(scope=Scope.APP)
    def get_auth_api(self, logger: logging.Logger) -> AuthAPI:
        return AuthAPI(logger=logger)

    @provide(scope=Scope.APP)
    def get_contact_api(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ) -> ContactAPI:
        return ContactAPI(
            logger=logger,
            auth_api=auth_api
        )

    @provide(scope=Scope.APP)
    def get_chat_api(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ) -> ChatAPI:
        return ChatAPI(
            logger=logger,
            auth_api=auth_api
        )

    @provide(scope=Scope.APP)
    def get_message_api(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ) -> MessageAPI:
        return MessageAPI(
            logger=logger,
            auth_api=auth_api
        )

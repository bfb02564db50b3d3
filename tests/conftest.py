"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite database file under tmp_path, so tests never
see each other's rows.
"""

import pytest
import pytest_asyncio

from messenger.config import Config, DBConfig
from messenger.core.db_manager import DatabaseManager
from messenger.core.gateways import UserGateway, RelationshipGateway, ChatGateway, MessageGateway

USERS = ("alice", "bob", "carol", "dave")
PASSWORD = "secret"


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(db=DBConfig(path=str(tmp_path / "messenger.db")))


@pytest_asyncio.fixture
async def db_manager(config):
    manager = DatabaseManager(config)
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def users(db_manager) -> UserGateway:
    return UserGateway(db_manager)


@pytest.fixture
def relationships(db_manager) -> RelationshipGateway:
    return RelationshipGateway(db_manager)


@pytest.fixture
def chats(db_manager) -> ChatGateway:
    return ChatGateway(db_manager)


@pytest.fixture
def messages(db_manager, chats) -> MessageGateway:
    return MessageGateway(db_manager, chats)


@pytest_asyncio.fixture
async def registered(users):
    """alice, bob, carol and dave, all with password 'secret'."""
    for login in USERS:
        await users.register(login, PASSWORD, "+15550100")
    return USERS

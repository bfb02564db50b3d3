from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator
import logging

from messenger.config import Config
from .database import Base
from .exceptions import StorageError
from .store import SessionStore


class BaseDatabaseManager:
    def __init__(self, config: Config):
        self.config = config
        self.engine = None
        self.session_factory = None
        self._logger = logging.getLogger(__name__)

    async def initialize(self):
        raise NotImplementedError()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        if not self.engine:
            await self.initialize()

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SessionStore, None]:
        """
        Storage handle for one unit of work.

        Everything done through the yielded store commits together or not at
        all. Driver failures surface as StorageError.
        """
        try:
            async with self.session() as session:
                yield SessionStore(session)
        except SQLAlchemyError as e:
            self._logger.error("Storage failure, transaction rolled back: %s", e)
            raise StorageError(str(e)) from e

    async def create_tables(self):
        if not self.engine:
            await self.initialize()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self):
        if not self.engine:
            await self.initialize()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


class DatabaseManager(BaseDatabaseManager):
    async def initialize(self):
        url = self.config.db.url
        if url.startswith("sqlite"):
            Path(self.config.db.path).parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_async_engine(url, echo=self.config.db.echo)
            event.listen(self.engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine.sync_engine, "begin", _begin_immediate)
        else:
            self.engine = create_async_engine(
                url=url,
                pool_size=30,
                max_overflow=20,
                pool_pre_ping=True,
                pool_timeout=60,
                pool_recycle=-1,
                echo=self.config.db.echo,
            )

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._logger.info("Database engine ready: %s", self.engine.url.render_as_string(hide_password=True))


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Driver-managed transactions off, BEGIN is emitted by _begin_immediate
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn):
    # Take the write lock up front so check-then-write sequences run one at a time
    conn.exec_driver_sql("BEGIN IMMEDIATE")

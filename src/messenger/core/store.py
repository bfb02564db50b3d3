from typing import Any, Sequence

from sqlalchemy import Executable, Row, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .interfaces import StoreInterface


class SessionStore(StoreInterface):
    """
    Storage handle bound to a single AsyncSession.

    One handle lives exactly as long as the transaction that created it, see
    DatabaseManager.transaction(). Statements are SQLAlchemy constructs, never
    formatted strings.
    """
    __slots__ = ("_session",)

    def __init__(self, session: AsyncSession):
        self._session = session

    async def execute(self, statement: Executable) -> None:
        await self._session.execute(statement)

    async def query_count(self, statement: Select) -> int:
        count_stmt = select(func.count()).select_from(statement.subquery())
        result = await self._session.execute(count_stmt)
        return result.scalar_one()

    async def query_rows(self, statement: Select) -> Sequence[Row]:
        result = await self._session.execute(statement)
        return result.all()

    async def query_scalar(self, statement: Select) -> Any:
        result = await self._session.execute(statement)
        return result.scalar_one_or_none()

    async def insert_returning_id(self, statement: Executable) -> int:
        result = await self._session.execute(statement)
        return result.scalar_one()

"""Transactional query executor over a SQLAlchemy async engine."""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


class DataContext:
    """
    Runs parameterized SQL against the pool owned by ``engine``.

    Statements use positional ``$n`` placeholders and are sent through
    ``exec_driver_sql`` so they reach asyncpg unchanged. Outside of an explicit
    ``begin()`` every statement runs and commits on its own pooled connection;
    between ``begin()`` and ``commit()``/``rollback()`` all statements share
    one held connection.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._connection: Optional[AsyncConnection] = None

    @property
    def in_transaction(self) -> bool:
        return self._connection is not None

    async def query(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        """Run a statement and return its rows as mappings keyed by column label."""
        if self._connection is not None:
            result = await self._connection.exec_driver_sql(sql, tuple(params))
            return list(result.mappings().all())

        async with self.engine.begin() as conn:
            result = await conn.exec_driver_sql(sql, tuple(params))
            return list(result.mappings().all())

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement that returns no rows. Returns the affected row count."""
        if self._connection is not None:
            result = await self._connection.exec_driver_sql(sql, tuple(params))
            return result.rowcount

        async with self.engine.begin() as conn:
            result = await conn.exec_driver_sql(sql, tuple(params))
            return result.rowcount

    async def begin(self) -> None:
        """Acquire a connection and open a transaction on it."""
        if self._connection is not None:
            raise RuntimeError("Transaction is already in progress")

        connection = await self.engine.connect()
        try:
            await connection.begin()
        except Exception:
            await connection.close()
            raise
        self._connection = connection
        logger.debug("Transaction started")

    async def commit(self) -> None:
        """Commit the open transaction and release its connection."""
        if self._connection is None:
            raise RuntimeError("No transaction in progress")

        try:
            await self._connection.commit()
            logger.debug("Transaction committed")
        finally:
            await self._release()

    async def rollback(self) -> None:
        """Roll back the open transaction and release its connection."""
        if self._connection is None:
            raise RuntimeError("No transaction in progress")

        try:
            await self._connection.rollback()
            logger.debug("Transaction rolled back")
        finally:
            await self._release()

    async def _release(self) -> None:
        connection, self._connection = self._connection, None
        await connection.close()

    async def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        if self._connection is not None:
            await self.rollback()
        await self.engine.dispose()
        logger.info("Database engine closed")

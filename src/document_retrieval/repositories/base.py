"""Base repository wrapping store failures into DatabaseError."""

import logging
from typing import Any, List, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from document_retrieval.database.data_context import DataContext, Row
from document_retrieval.utils.errors import DatabaseError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Stateless façade over a ``DataContext`` for one entity kind."""

    entity: str = "Entity"

    def __init__(self, data_context: DataContext):
        """
        Initialize repository.

        Args:
            data_context: Query executor shared by all repositories
        """
        self.data_context = data_context

    async def _query(self, operation: str, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        try:
            return await self.data_context.query(sql, params)
        except SQLAlchemyError as e:
            logger.error(f"Error during {operation} on {self.entity}: {e}")
            raise DatabaseError(
                f"Failed to {operation} {self.entity}", entity=self.entity, operation=operation
            ) from e

    async def _execute(self, operation: str, sql: str, params: Sequence[Any] = ()) -> int:
        try:
            return await self.data_context.execute(sql, params)
        except SQLAlchemyError as e:
            logger.error(f"Error during {operation} on {self.entity}: {e}")
            raise DatabaseError(
                f"Failed to {operation} {self.entity}", entity=self.entity, operation=operation
            ) from e


def as_str(value: Any) -> Any:
    """asyncpg returns UUID columns as ``uuid.UUID``; the models carry strings."""
    if isinstance(value, UUID):
        return str(value)
    return value

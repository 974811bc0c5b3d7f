"""Document repository for data access operations."""

import logging
from typing import List, Optional

from document_retrieval.database.data_context import Row
from document_retrieval.models.document import Document, DocumentFilters, DocumentUpdate
from document_retrieval.repositories.base import BaseRepository, as_str
from document_retrieval.repositories.predicates import (
    Assignment,
    Conjunction,
    FilterField,
    FilterKind,
    ParameterList,
    compile_assignments,
    compile_filters,
)

logger = logging.getLogger(__name__)

DOCUMENT_COLUMNS = """document.id AS document_id,
    document.key AS document_key,
    document.name AS document_name,
    document.mimetype AS document_mimetype,
    document.size_in_bytes AS document_size_in_bytes,
    document.is_processed AS document_is_processed,
    document.chat_id AS document_chat_id,
    document.project_id AS document_project_id,
    document.user_id AS document_user_id,
    document.created_at AS document_created_at,
    document.updated_at AS document_updated_at"""

DOCUMENT_FILTER_FIELDS = (
    FilterField("id", "document.id"),
    FilterField("ids", "document.id", FilterKind.ANY),
    FilterField("key", "document.key"),
    FilterField("mimetype", "document.mimetype"),
    FilterField("is_processed", "document.is_processed"),
    FilterField("chat_id", "document.chat_id", nullable=True),
    FilterField("project_id", "document.project_id", nullable=True),
    FilterField("user_id", "document.user_id"),
)

DOCUMENT_ASSIGNMENTS = (
    Assignment("name", "name"),
    Assignment("is_processed", "is_processed"),
    Assignment("chat_id", "chat_id", nullable=True),
    Assignment("project_id", "project_id", nullable=True),
)


def map_row_to_document(row: Row) -> Document:
    """Build a Document from ``document_*`` aliased columns."""
    return Document(
        id=as_str(row["document_id"]),
        key=row["document_key"],
        name=row["document_name"],
        mimetype=row["document_mimetype"],
        size_in_bytes=row["document_size_in_bytes"],
        is_processed=row["document_is_processed"],
        chat_id=as_str(row["document_chat_id"]),
        project_id=as_str(row["document_project_id"]),
        user_id=as_str(row["document_user_id"]),
        created_at=row.get("document_created_at"),
        updated_at=row.get("document_updated_at"),
    )


class DocumentRepository(BaseRepository):
    """Repository for document data access operations."""

    entity = "Document"

    async def exists(self, filters: Optional[DocumentFilters] = None) -> bool:
        """Check whether any document matches all present filters."""
        params = ParameterList()
        predicate = compile_filters(filters, DOCUMENT_FILTER_FIELDS, params)
        rows = await self._query(
            "check existence of",
            f"""SELECT 1
FROM "document"
WHERE {predicate.clause()}
LIMIT 1;""",
            params.values,
        )
        return len(rows) > 0

    async def count(self, filters: Optional[DocumentFilters] = None) -> int:
        """Count documents matching all present filters."""
        params = ParameterList()
        predicate = compile_filters(filters, DOCUMENT_FILTER_FIELDS, params)
        rows = await self._query(
            "count",
            f"""SELECT COUNT(*) AS count
FROM "document"
WHERE {predicate.clause()};""",
            params.values,
        )
        return int(rows[0]["count"]) if rows else 0

    async def find_all(self, filters: Optional[DocumentFilters] = None) -> List[Document]:
        """Get documents matching all present filters, oldest first."""
        return await self._find(filters, Conjunction.AND)

    async def find_any(self, filters: Optional[DocumentFilters] = None) -> List[Document]:
        """Get documents matching at least one present filter, oldest first."""
        return await self._find(filters, Conjunction.OR)

    async def find_one(self, filters: Optional[DocumentFilters] = None) -> Optional[Document]:
        """Get the first document matching all present filters, or None."""
        documents = await self._find(filters, Conjunction.AND, limit=1)
        return documents[0] if documents else None

    async def _find(
        self,
        filters: Optional[DocumentFilters],
        conjunction: Conjunction,
        limit: Optional[int] = None,
    ) -> List[Document]:
        params = ParameterList()
        predicate = compile_filters(filters, DOCUMENT_FILTER_FIELDS, params)
        limit_clause = f"\nLIMIT {params.bind(limit)}" if limit is not None else ""
        rows = await self._query(
            "retrieve",
            f"""SELECT
    {DOCUMENT_COLUMNS}
FROM "document"
WHERE {predicate.clause(conjunction)}
ORDER BY document.created_at, document.id{limit_clause};""",
            params.values,
        )
        return [map_row_to_document(row) for row in rows]

    async def create(self, document: Document) -> None:
        """Insert a new document record."""
        await self._execute(
            "create",
            """INSERT INTO "document"
(id, key, name, mimetype, size_in_bytes, is_processed, chat_id, project_id, user_id)
VALUES
($1, $2, $3, $4, $5, $6, $7, $8, $9);""",
            [
                document.id,
                document.key,
                document.name,
                document.mimetype,
                document.size_in_bytes,
                document.is_processed,
                document.chat_id,
                document.project_id,
                document.user_id,
            ],
        )
        logger.debug(f"Created Document with ID: {document.id}")

    async def update(self, id: str, changes: DocumentUpdate) -> bool:
        """
        Apply a partial update.

        Args:
            id: Document ID
            changes: Fields to set; unset fields are untouched, None clears

        Returns:
            True if a document was updated, False if not found
        """
        params = ParameterList()
        assignments = ",\n    ".join(compile_assignments(changes, DOCUMENT_ASSIGNMENTS, params))
        id_placeholder = params.bind(id)
        count = await self._execute(
            "update",
            f"""UPDATE "document"
SET
    {assignments}
WHERE id = {id_placeholder};""",
            params.values,
        )
        logger.debug(f"Updated Document with ID: {id}")
        return count > 0

    async def delete(self, id: str) -> bool:
        """Delete a document by ID. Its chunks go with it (ON DELETE CASCADE)."""
        count = await self._execute(
            "delete",
            """DELETE FROM "document"
WHERE id = $1;""",
            [id],
        )
        logger.debug(f"Deleted Document with ID: {id}")
        return count > 0

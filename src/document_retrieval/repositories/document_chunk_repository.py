"""Document chunk repository: bulk insert and similarity-ranked retrieval."""

import logging
from typing import List, Optional, Sequence

from pgvector import Vector

from document_retrieval.config import DistanceMetric
from document_retrieval.database.data_context import DataContext, Row
from document_retrieval.models.chunk import DocumentChunk, DocumentChunkFilters
from document_retrieval.repositories.base import BaseRepository, as_str
from document_retrieval.repositories.document_repository import (
    DOCUMENT_COLUMNS,
    map_row_to_document,
)
from document_retrieval.repositories.materializer import assign_to, materialize
from document_retrieval.repositories.predicates import (
    FilterField,
    ParameterList,
    Predicate,
    compile_filters,
    compile_values,
)
from document_retrieval.utils.errors import ValidationError

logger = logging.getLogger(__name__)

DOCUMENT_JOIN = 'JOIN "document" ON document.id = document_chunk.document_id'

CHUNK_COLUMNS = """document_chunk.id AS chunk_id,
    document_chunk.index AS chunk_index,
    document_chunk.content AS chunk_content,
    document_chunk.embedding::text AS chunk_embedding,
    document_chunk.document_id AS chunk_document_id,
    document_chunk.created_at AS chunk_created_at"""

CHUNK_FILTER_FIELDS = (
    FilterField("document_id", "document_chunk.document_id"),
    FilterField("chat_id", "document.chat_id", nullable=True, join=DOCUMENT_JOIN),
    FilterField("project_id", "document.project_id", nullable=True, join=DOCUMENT_JOIN),
    FilterField("user_id", "document.user_id", join=DOCUMENT_JOIN),
)

INSERT_CASTS = (None, None, None, "vector", None)


def map_row_to_chunk(row: Row) -> DocumentChunk:
    """Build a DocumentChunk from ``chunk_*`` aliased columns."""
    embedding = row.get("chunk_embedding")
    return DocumentChunk(
        id=as_str(row["chunk_id"]),
        index=row["chunk_index"],
        content=row["chunk_content"],
        embedding=Vector.from_text(embedding).to_list() if embedding else [],
        document_id=as_str(row["chunk_document_id"]),
        created_at=row.get("chunk_created_at"),
        score=row.get("score"),
    )


class DocumentChunkRepository(BaseRepository):
    """Repository for document chunk data access operations."""

    entity = "DocumentChunk"

    def __init__(
        self,
        data_context: DataContext,
        distance_metric: DistanceMetric = DistanceMetric.COSINE,
    ):
        """
        Initialize chunk repository.

        Args:
            data_context: Query executor
            distance_metric: pgvector distance the embedding space was trained for
        """
        super().__init__(data_context)
        self.distance_metric = distance_metric

    async def create_all(self, chunks: Sequence[DocumentChunk]) -> None:
        """
        Insert all chunks with a single multi-row statement.

        One statement keeps the insert atomic: either every chunk row lands
        or none does.

        Raises:
            ValidationError: If a chunk has not been embedded yet
        """
        if not chunks:
            return

        missing = [chunk.index for chunk in chunks if not chunk.embedding]
        if missing:
            raise ValidationError(
                "Chunks must be embedded before they are stored",
                details={"chunk_indexes": missing},
            )

        params = ParameterList()
        values = compile_values(
            (
                (
                    chunk.id,
                    chunk.index,
                    chunk.content,
                    Vector(chunk.embedding).to_text(),
                    chunk.document_id,
                )
                for chunk in chunks
            ),
            params,
            INSERT_CASTS,
        )
        await self._execute(
            "create",
            f"""INSERT INTO "document_chunk"
(id, index, content, embedding, document_id)
VALUES
{values};""",
            params.values,
        )
        logger.debug(f"Created {len(chunks)} DocumentChunk rows for document {chunks[0].document_id}")

    async def delete_all(self, document_id: str) -> int:
        """Delete every chunk of a document and return how many were removed."""
        count = await self._execute(
            "delete",
            'DELETE FROM "document_chunk" WHERE document_id = $1;',
            [document_id],
        )
        logger.debug(f"Deleted {count} DocumentChunk rows for document {document_id}")
        return count

    async def find_relevant(
        self,
        embedding: Sequence[float],
        limit: int,
        filters: Optional[DocumentChunkFilters] = None,
    ) -> List[DocumentChunk]:
        """
        Get the ``limit`` chunks most similar to ``embedding``.

        Score is ``1 - distance``; results are ordered by score, highest first.
        Ties have no defined order.

        Args:
            embedding: Query vector; always bound as ``$1``
            limit: Maximum number of chunks; always bound last
            filters: Optional document/chat/project/user constraints

        Returns:
            Ranked chunks, each carrying its score and, when requested, its document
        """
        if limit <= 0:
            raise ValidationError("limit must be greater than 0", details={"limit": limit})
        if not embedding:
            raise ValidationError("Query embedding must not be empty")

        include_document = bool(filters and filters.include_document)

        params = ParameterList()
        query_vector = params.bind(Vector(list(embedding)).to_text(), "vector")
        predicate = compile_filters(filters, CHUNK_FILTER_FIELDS, params)
        if include_document:
            predicate.require_join(DOCUMENT_JOIN)
        limit_placeholder = params.bind(limit)

        document_columns = f"{DOCUMENT_COLUMNS},\n    " if include_document else ""
        rows = await self._query(
            "search",
            f"""SELECT
    {CHUNK_COLUMNS},
    {document_columns}1 - (document_chunk.embedding {self.distance_metric.operator} {query_vector}) AS score
FROM "document_chunk"
{self._joins(predicate)}WHERE {predicate.clause()}
ORDER BY score DESC
LIMIT {limit_placeholder};""",
            params.values,
        )

        return self._materialize(rows, include_document)

    async def find_all(self, filters: Optional[DocumentChunkFilters] = None) -> List[DocumentChunk]:
        """Get chunks matching all present filters, grouped by document in index order."""
        include_document = bool(filters and filters.include_document)

        params = ParameterList()
        predicate = compile_filters(filters, CHUNK_FILTER_FIELDS, params)
        if include_document:
            predicate.require_join(DOCUMENT_JOIN)

        document_columns = f",\n    {DOCUMENT_COLUMNS}" if include_document else ""
        rows = await self._query(
            "retrieve",
            f"""SELECT
    {CHUNK_COLUMNS}{document_columns}
FROM "document_chunk"
{self._joins(predicate)}WHERE {predicate.clause()}
ORDER BY document_chunk.document_id, document_chunk.index;""",
            params.values,
        )

        return self._materialize(rows, include_document)

    async def count(self, filters: Optional[DocumentChunkFilters] = None) -> int:
        """Count chunks matching all present filters."""
        params = ParameterList()
        predicate = compile_filters(filters, CHUNK_FILTER_FIELDS, params)
        rows = await self._query(
            "count",
            f"""SELECT COUNT(*) AS count
FROM "document_chunk"
{self._joins(predicate)}WHERE {predicate.clause()};""",
            params.values,
        )
        return int(rows[0]["count"]) if rows else 0

    @staticmethod
    def _joins(predicate: Predicate) -> str:
        return "".join(f"{join}\n" for join in predicate.joins)

    @staticmethod
    def _materialize(rows: List[Row], include_document: bool) -> List[DocumentChunk]:
        if not include_document:
            return materialize(rows, "chunk_id", map_row_to_chunk)
        return materialize(
            rows,
            "chunk_id",
            map_row_to_chunk,
            child_key="document_id",
            build_child=map_row_to_document,
            attach_child=assign_to("document"),
        )

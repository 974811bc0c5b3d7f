"""Tests for the document chunk repository."""

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import document_row
from document_retrieval.config import DistanceMetric
from document_retrieval.models.chunk import DocumentChunk, DocumentChunkFilters
from document_retrieval.repositories.document_chunk_repository import (
    DOCUMENT_JOIN,
    DocumentChunkRepository,
)
from document_retrieval.utils.errors import DatabaseError, ValidationError


def chunk_row(chunk_id, index, document_id, score=None, embedding="[0.1,0.2]"):
    return {
        "chunk_id": chunk_id,
        "chunk_index": index,
        "chunk_content": f"content {index}",
        "chunk_embedding": embedding,
        "chunk_document_id": document_id,
        "chunk_created_at": None,
        "score": score,
    }


class TestCreateAll:
    """Test suite for bulk chunk insert."""

    @pytest.mark.asyncio
    async def test_empty_input_is_a_no_op(self, mock_data_context):
        repo = DocumentChunkRepository(mock_data_context)

        await repo.create_all([])

        mock_data_context.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_single_multi_row_insert(self, mock_data_context):
        chunks = [
            DocumentChunk(id="c0", index=0, content="a b", embedding=[0.5, 1.0], document_id="d1"),
            DocumentChunk(id="c1", index=1, content="b c", embedding=[0.25, 2.0], document_id="d1"),
        ]
        repo = DocumentChunkRepository(mock_data_context)

        await repo.create_all(chunks)

        mock_data_context.execute.assert_called_once()
        sql, params = mock_data_context.execute.call_args.args
        assert "(id, index, content, embedding, document_id)" in sql
        assert "($1, $2, $3, $4::vector, $5),\n($6, $7, $8, $9::vector, $10)" in sql
        assert params == ["c0", 0, "a b", "[0.5,1.0]", "d1", "c1", 1, "b c", "[0.25,2.0]", "d1"]

    @pytest.mark.asyncio
    async def test_unembedded_chunks_are_rejected(self, mock_data_context):
        chunks = [DocumentChunk(id="c0", index=0, content="a", document_id="d1")]
        repo = DocumentChunkRepository(mock_data_context)

        with pytest.raises(ValidationError):
            await repo.create_all(chunks)

        mock_data_context.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_insert_surfaces_as_database_error(self, mock_data_context):
        mock_data_context.execute.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        chunks = [DocumentChunk(id="c0", index=0, content="a", embedding=[1.0], document_id="d1")]
        repo = DocumentChunkRepository(mock_data_context)

        with pytest.raises(DatabaseError) as exc_info:
            await repo.create_all(chunks)

        assert exc_info.value.details["entity"] == "DocumentChunk"
        assert exc_info.value.details["operation"] == "create"


class TestFindRelevant:
    """Test suite for similarity search."""

    @pytest.mark.asyncio
    async def test_embedding_first_limit_last(self, mock_data_context):
        repo = DocumentChunkRepository(mock_data_context)

        await repo.find_relevant(
            [0.5, 0.25], 5, DocumentChunkFilters(document_id="d1", user_id="u1")
        )

        sql, params = mock_data_context.query.call_args.args
        assert "1 - (document_chunk.embedding <=> $1::vector) AS score" in sql
        assert "document_chunk.document_id = $2 AND document.user_id = $3" in sql
        assert "ORDER BY score DESC" in sql
        assert "LIMIT $4;" in sql
        assert DOCUMENT_JOIN in sql
        assert params == ["[0.5,0.25]", "d1", "u1", 5]

    @pytest.mark.asyncio
    async def test_without_filters(self, mock_data_context):
        repo = DocumentChunkRepository(mock_data_context)

        await repo.find_relevant([1.0], 3)

        sql, params = mock_data_context.query.call_args.args
        assert "WHERE TRUE" in sql
        assert "JOIN" not in sql
        assert params == ["[1.0]", 3]

    @pytest.mark.asyncio
    async def test_document_id_filter_does_not_join(self, mock_data_context):
        repo = DocumentChunkRepository(mock_data_context)

        await repo.find_relevant([1.0], 3, DocumentChunkFilters(document_id="d1"))

        sql, _ = mock_data_context.query.call_args.args
        assert "JOIN" not in sql

    @pytest.mark.asyncio
    async def test_project_filter_joins_document(self, mock_data_context):
        repo = DocumentChunkRepository(mock_data_context)

        await repo.find_relevant([1.0], 3, DocumentChunkFilters(project_id="p1"))

        sql, params = mock_data_context.query.call_args.args
        assert sql.count("JOIN") == 1
        assert "document.project_id = $2" in sql
        assert "document.id AS document_id" not in sql
        assert params == ["[1.0]", "p1", 3]

    @pytest.mark.parametrize(
        "metric, operator",
        [
            (DistanceMetric.COSINE, "<=>"),
            (DistanceMetric.L2, "<->"),
            (DistanceMetric.INNER_PRODUCT, "<#>"),
        ],
    )
    @pytest.mark.asyncio
    async def test_distance_metric_selects_operator(self, mock_data_context, metric, operator):
        repo = DocumentChunkRepository(mock_data_context, distance_metric=metric)

        await repo.find_relevant([1.0], 1)

        sql, _ = mock_data_context.query.call_args.args
        assert f"document_chunk.embedding {operator} $1::vector" in sql

    @pytest.mark.asyncio
    async def test_returns_rows_in_score_order_with_embeddings(self, mock_data_context):
        mock_data_context.query.return_value = [
            chunk_row("c2", 2, "d1", score=0.9, embedding="[0.3,0.4]"),
            chunk_row("c0", 0, "d1", score=0.7),
        ]
        repo = DocumentChunkRepository(mock_data_context)

        result = await repo.find_relevant([0.1, 0.2], 2)

        assert [c.id for c in result] == ["c2", "c0"]
        assert [c.score for c in result] == [0.9, 0.7]
        assert result[0].embedding == pytest.approx([0.3, 0.4])
        assert result[0].document is None

    @pytest.mark.asyncio
    async def test_include_document_attaches_owner(self, mock_data_context, make_document):
        document = make_document()
        mock_data_context.query.return_value = [
            {**chunk_row("c0", 0, document.id, score=0.8), **document_row(document)},
            {**chunk_row("c1", 1, document.id, score=0.6), **document_row(document)},
        ]
        repo = DocumentChunkRepository(mock_data_context)

        result = await repo.find_relevant(
            [0.1, 0.2], 2, DocumentChunkFilters(include_document=True)
        )

        sql, _ = mock_data_context.query.call_args.args
        assert "document.id AS document_id" in sql
        assert DOCUMENT_JOIN in sql
        assert [c.document for c in result] == [document, document]

    @pytest.mark.parametrize("limit", [0, -1])
    @pytest.mark.asyncio
    async def test_non_positive_limit_is_rejected(self, mock_data_context, limit):
        repo = DocumentChunkRepository(mock_data_context)

        with pytest.raises(ValidationError):
            await repo.find_relevant([1.0], limit)

        mock_data_context.query.assert_not_called()


class TestFindAllCountAndDelete:
    """Test suite for chunk listing, counting and deletion."""

    @pytest.mark.asyncio
    async def test_find_all_orders_by_document_then_index(self, mock_data_context):
        mock_data_context.query.return_value = [chunk_row("c0", 0, "d1"), chunk_row("c1", 1, "d1")]
        repo = DocumentChunkRepository(mock_data_context)

        result = await repo.find_all(DocumentChunkFilters(document_id="d1"))

        sql, params = mock_data_context.query.call_args.args
        assert "ORDER BY document_chunk.document_id, document_chunk.index" in sql
        assert params == ["d1"]
        assert [c.index for c in result] == [0, 1]
        assert all(c.score is None for c in result)

    @pytest.mark.asyncio
    async def test_count_with_chat_filter(self, mock_data_context):
        mock_data_context.query.return_value = [{"count": 4}]
        repo = DocumentChunkRepository(mock_data_context)

        assert await repo.count(DocumentChunkFilters(chat_id="c1")) == 4

        sql, params = mock_data_context.query.call_args.args
        assert DOCUMENT_JOIN in sql
        assert params == ["c1"]

    @pytest.mark.asyncio
    async def test_delete_all_for_document(self, mock_data_context):
        mock_data_context.execute.return_value = 3
        repo = DocumentChunkRepository(mock_data_context)

        assert await repo.delete_all("d1") == 3

        sql, params = mock_data_context.execute.call_args.args
        assert sql == 'DELETE FROM "document_chunk" WHERE document_id = $1;'
        assert params == ["d1"]

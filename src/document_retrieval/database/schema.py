"""Relational schema for projects, documents and their embedded chunks."""

import logging
from typing import List

from document_retrieval.database.data_context import DataContext

logger = logging.getLogger(__name__)


def schema_statements(dimension: int) -> List[str]:
    """
    DDL for the tables this package reads and writes.

    ``chat_id`` and ``user_id`` reference tables owned by the surrounding
    application and are kept as plain columns. ``UNIQUE (document_id, index)``
    makes a second concurrent ingestion of the same document fail instead of
    duplicating its chunks.
    """
    if dimension <= 0:
        raise ValueError("Embedding dimension must be positive")

    return [
        "CREATE EXTENSION IF NOT EXISTS vector;",
        """CREATE TABLE IF NOT EXISTS "project" (
            id UUID PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            user_id UUID NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );""",
        """CREATE TABLE IF NOT EXISTS "document" (
            id UUID PRIMARY KEY,
            key TEXT NOT NULL,
            name TEXT NOT NULL,
            mimetype TEXT NOT NULL,
            size_in_bytes BIGINT NOT NULL,
            is_processed BOOLEAN NOT NULL DEFAULT FALSE,
            chat_id UUID,
            project_id UUID REFERENCES "project" (id) ON DELETE CASCADE,
            user_id UUID NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );""",
        f"""CREATE TABLE IF NOT EXISTS "document_chunk" (
            id UUID PRIMARY KEY,
            index INTEGER NOT NULL CHECK (index >= 0),
            content TEXT NOT NULL,
            embedding VECTOR({int(dimension)}) NOT NULL,
            document_id UUID NOT NULL REFERENCES "document" (id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE (document_id, index)
        );""",
        'CREATE INDEX IF NOT EXISTS document_user_id_idx ON "document" (user_id);',
        'CREATE INDEX IF NOT EXISTS document_chat_id_idx ON "document" (chat_id);',
        'CREATE INDEX IF NOT EXISTS document_project_id_idx ON "document" (project_id);',
        'CREATE INDEX IF NOT EXISTS project_user_id_idx ON "project" (user_id);',
    ]


async def create_schema(data_context: DataContext, dimension: int) -> None:
    """Create the extension, tables and indexes if they do not exist."""
    statements = schema_statements(dimension)
    for statement in statements:
        await data_context.execute(statement)
    logger.info(f"Database schema ensured: statements={len(statements)}, dimension={dimension}")

"""Ingestion and retrieval services."""

from document_retrieval.services.chunking_service import ChunkingService
from document_retrieval.services.document_manager import DocumentManager
from document_retrieval.services.embedding_fanout import embed_chunks
from document_retrieval.services.embedding_service import EmbeddingService
from document_retrieval.services.parser_service import ParserService
from document_retrieval.services.storage_service import (
    AzureBlobFileStorage,
    FileStorage,
    LocalFileStorage,
    create_file_storage,
)

__all__ = [
    "AzureBlobFileStorage",
    "ChunkingService",
    "DocumentManager",
    "EmbeddingService",
    "FileStorage",
    "LocalFileStorage",
    "ParserService",
    "create_file_storage",
    "embed_chunks",
]

"""Composition root wiring the engine, stores and services together."""

from typing import Optional

from document_retrieval.config import Settings, get_settings
from document_retrieval.database.connection import create_engine
from document_retrieval.database.data_context import DataContext
from document_retrieval.repositories.document_chunk_repository import DocumentChunkRepository
from document_retrieval.repositories.document_repository import DocumentRepository
from document_retrieval.services.chunking_service import ChunkingService
from document_retrieval.services.document_manager import DocumentManager
from document_retrieval.services.embedding_service import EmbeddingService
from document_retrieval.services.parser_service import ParserService
from document_retrieval.services.storage_service import create_file_storage
from document_retrieval.utils.logging import get_logger, setup_logging

logger = get_logger("dependencies")


def create_document_manager(settings: Optional[Settings] = None) -> DocumentManager:
    """
    Build a DocumentManager and everything it depends on.

    The returned manager owns an engine (connection pool), an embedding client
    and a file storage client; release them with ``close_document_manager``.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    data_context = DataContext(create_engine(settings))
    embedding_service = EmbeddingService(settings.embedding)

    manager = DocumentManager(
        document_repository=DocumentRepository(data_context),
        document_chunk_repository=DocumentChunkRepository(
            data_context, distance_metric=settings.retrieval.distance_metric
        ),
        file_storage=create_file_storage(settings.storage),
        embed=embedding_service.embed,
        parser=ParserService(),
        chunking_service=ChunkingService(
            settings.chunking.chunk_size, settings.chunking.chunk_overlap
        ),
        max_documents_per_user=settings.max_documents_per_user,
        embedding_max_concurrency=settings.embedding.embedding_max_concurrency,
        embedding_dimension=settings.embedding.embedding_dimension,
        default_limit=settings.retrieval.default_limit,
    )
    logger.info(
        f"Document manager created: storage={settings.storage.backend.value}, "
        f"embedding_provider={settings.embedding.provider.value}, "
        f"distance_metric={settings.retrieval.distance_metric.value}"
    )
    return manager


async def close_document_manager(manager: DocumentManager) -> None:
    """Dispose the connection pool and close collaborator clients."""
    embedding_service = getattr(manager.embed, "__self__", None)
    if isinstance(embedding_service, EmbeddingService):
        await embedding_service.close()

    await manager.file_storage.close()
    await manager.document_repository.data_context.close()

    logger.info("Document manager closed")

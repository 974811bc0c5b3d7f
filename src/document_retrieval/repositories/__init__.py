"""Repositories over the shared DataContext."""

from document_retrieval.repositories.document_chunk_repository import DocumentChunkRepository
from document_retrieval.repositories.document_repository import DocumentRepository
from document_retrieval.repositories.project_repository import ProjectRepository

__all__ = [
    "DocumentChunkRepository",
    "DocumentRepository",
    "ProjectRepository",
]

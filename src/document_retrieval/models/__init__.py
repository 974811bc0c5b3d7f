"""Domain models for documents, chunks and projects."""

from document_retrieval.models.chunk import DocumentChunk, DocumentChunkFilters
from document_retrieval.models.document import Document, DocumentFilters, DocumentUpdate
from document_retrieval.models.project import Project, ProjectFilters, ProjectUpdate

__all__ = [
    "Document",
    "DocumentFilters",
    "DocumentUpdate",
    "DocumentChunk",
    "DocumentChunkFilters",
    "Project",
    "ProjectFilters",
    "ProjectUpdate",
]

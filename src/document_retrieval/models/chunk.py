"""Document chunk models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from document_retrieval.models.document import Document


class DocumentChunk(BaseModel):
    """A window of a document's extracted text, individually embedded."""

    id: str = Field(..., description="Unique chunk identifier")
    index: int = Field(..., ge=0, description="0-based index of this chunk within the document")
    content: str = Field(..., description="Chunk text content")
    embedding: List[float] = Field(
        default_factory=list, description="Embedding vector (empty until embedded)"
    )
    document_id: str = Field(..., description="Owning document")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    score: Optional[float] = Field(
        default=None, description="Similarity to the query vector (retrieval only)"
    )
    document: Optional[Document] = Field(
        default=None, description="Owning document, only populated when requested"
    )


class DocumentChunkFilters(BaseModel):
    """
    Sparse filter over chunks.

    ``chat_id``, ``project_id`` and ``user_id`` live on the owning document,
    so any of them joins the document table.
    """

    document_id: Optional[str] = None
    chat_id: Optional[str] = None
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    include_document: bool = False

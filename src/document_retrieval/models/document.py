"""Document models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Document(BaseModel):
    """An uploaded document owned by a user, optionally attached to a chat or a project."""

    id: str = Field(..., description="Unique document identifier")
    key: str = Field(..., description="Opaque file storage key of the raw bytes")
    name: str = Field(..., description="Display name (original filename)")
    mimetype: str = Field(..., description="MIME type of the raw bytes")
    size_in_bytes: int = Field(..., ge=0, description="Size of the raw bytes")
    is_processed: bool = Field(default=False, description="Whether chunks and embeddings exist")
    chat_id: Optional[str] = Field(default=None, description="Owning chat, if any")
    project_id: Optional[str] = Field(default=None, description="Owning project, if any")
    user_id: str = Field(..., description="Owning user")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")
    content: Optional[str] = Field(
        default=None, description="Extracted text, only populated when explicitly requested"
    )


class DocumentFilters(BaseModel):
    """
    Sparse filter over documents.

    Only fields that were explicitly passed constrain the query. Passing
    ``chat_id=None`` or ``project_id=None`` matches documents where that
    column IS NULL.
    """

    id: Optional[str] = None
    ids: Optional[List[str]] = None
    key: Optional[str] = None
    mimetype: Optional[str] = None
    is_processed: Optional[bool] = None
    chat_id: Optional[str] = None
    project_id: Optional[str] = None
    user_id: Optional[str] = None


class DocumentUpdate(BaseModel):
    """
    Partial update of a document.

    Unset fields are left untouched. ``chat_id`` and ``project_id`` are
    cleared when set to ``None``; ``name`` and ``is_processed`` cannot be.
    """

    name: Optional[str] = None
    is_processed: Optional[bool] = None
    chat_id: Optional[str] = None
    project_id: Optional[str] = None

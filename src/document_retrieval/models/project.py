"""Project models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from document_retrieval.models.document import Document


class Project(BaseModel):
    """A user's project grouping documents shared across its chats."""

    id: str = Field(..., description="Unique project identifier")
    title: str = Field(..., description="Project title")
    description: Optional[str] = Field(default=None, description="Free-form description")
    user_id: str = Field(..., description="Owning user")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")
    documents: Optional[List[Document]] = Field(
        default=None,
        description="Owned documents in creation order, only populated when requested",
    )


class ProjectFilters(BaseModel):
    """Sparse filter over projects. ``title`` is a case-insensitive partial match."""

    id: Optional[str] = None
    ids: Optional[List[str]] = None
    title: Optional[str] = None
    user_id: Optional[str] = None
    include_documents: bool = False


class ProjectUpdate(BaseModel):
    """Partial update of a project. Unset fields are left untouched, ``description=None`` clears."""

    title: Optional[str] = None
    description: Optional[str] = None

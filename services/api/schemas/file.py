"""
Pydantic schemas for files and their PDF versions.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    folder_id: int
    project_id: int
    uploaded_by: int
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None


class VersionOut(BaseModel):
    """One immutable version. The stored content reference is not exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_id: int
    version_number: int
    description: Optional[str] = None
    uploaded_by: int
    uploaded_at: Optional[datetime] = None
    page_count: Optional[int] = None
    annotation_count: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UploadOut(BaseModel):
    """Result of a file upload; `version` is set for PDFs only."""
    file: FileOut
    version: Optional[VersionOut] = None

"""
Pydantic schemas for folders.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FolderCreate(BaseModel):
    """Create a folder; omit parent_id for a root folder."""
    name: str = Field(..., min_length=1, max_length=200, description="Folder name")
    parent_id: Optional[Union[int, str]] = Field(None, description="Parent folder in the same project")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Folder name must not be blank")
        return v.strip()


class FolderReparent(BaseModel):
    """New parent for a folder; null moves it to the root."""
    parent_id: Optional[Union[int, str]] = None


class FolderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    project_id: int
    parent_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


class FolderNode(BaseModel):
    id: Optional[int] = None
    name: str
    parent_id: Optional[int] = None
    children: List[FolderNode] = Field(default_factory=list)


class FolderTree(FolderNode):
    """Top-level "Files" node (id is null) with the project's root folders as children."""
    project_id: int


FolderNode.model_rebuild()

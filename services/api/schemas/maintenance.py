"""
Pydantic schemas for hierarchy maintenance.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from .folder import FolderOut


class LinearizeRequest(BaseModel):
    """Folder names, root first. An empty list changes nothing."""
    names: List[str] = Field(..., max_length=500)

    @field_validator("names")
    @classmethod
    def validate_names(cls, v: List[str]) -> List[str]:
        if any(not n or not n.strip() for n in v):
            raise ValueError("Folder names must not be blank")
        return v


class LinearizeOut(BaseModel):
    project_id: int
    folders: List[FolderOut]


class IntegrityReport(BaseModel):
    project_id: int
    ok: bool
    folder_problems: List[str] = Field(default_factory=list)
    misplaced_file_ids: List[int] = Field(default_factory=list)
    version_problems: List[Dict[str, Any]] = Field(default_factory=list)

"""
Pydantic schemas for API request/response validation.
"""
from typing import Optional

from pydantic import BaseModel

from .annotation import AnnotationCreate, AnnotationOut, AssigneeUpdate, RectIn, StatusUpdate
from .file import FileOut, UploadOut, VersionOut
from .folder import FolderCreate, FolderNode, FolderOut, FolderReparent, FolderTree
from .maintenance import IntegrityReport, LinearizeOut, LinearizeRequest
from .project import MemberAdd, MembershipOut, ProjectCreate, ProjectOut


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    ok: bool = True
    backend: Optional[str] = None


# Re-export all
__all__ = [
    "AnnotationCreate",
    "AnnotationOut",
    "AssigneeUpdate",
    "RectIn",
    "StatusUpdate",
    "FileOut",
    "UploadOut",
    "VersionOut",
    "FolderCreate",
    "FolderNode",
    "FolderOut",
    "FolderReparent",
    "FolderTree",
    "IntegrityReport",
    "LinearizeOut",
    "LinearizeRequest",
    "MemberAdd",
    "MembershipOut",
    "ProjectCreate",
    "ProjectOut",
    "HealthCheck",
]

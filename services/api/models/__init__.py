from __future__ import annotations

from .annotation import (
    ANNOTATION_STATUSES,
    DEFAULT_STATUS,
    LEGACY_STATUS_ALIASES,
    STATUS_COLORS,
    Annotation,
    Rect,
)
from .file import VaultFile
from .folder import Folder
from .pdf_version import PdfVersion
from .project import DEFAULT_ROLE, ELEVATED_ROLES, PROJECT_ROLES, Membership, Project, User

__all__ = [
    "ANNOTATION_STATUSES",
    "DEFAULT_STATUS",
    "LEGACY_STATUS_ALIASES",
    "STATUS_COLORS",
    "Annotation",
    "Rect",
    "VaultFile",
    "Folder",
    "PdfVersion",
    "DEFAULT_ROLE",
    "ELEVATED_ROLES",
    "PROJECT_ROLES",
    "Membership",
    "Project",
    "User",
]

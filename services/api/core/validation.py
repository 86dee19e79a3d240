"""
Validation utilities for the document vault.
Everything here runs before any storage access and raises typed vault errors.
"""
import math
import re
from typing import Any, BinaryIO, List, Optional, Sequence, Type

from core.errors import (
    InvalidIdFormat,
    MissingFolderId,
    MissingProjectId,
    InvalidRect,
    InvalidRole,
    UnknownStatus,
    UnsupportedFileType,
    UploadTooLarge,
    VaultError,
)
from models.annotation import ANNOTATION_STATUSES, LEGACY_STATUS_ALIASES, Rect
from models.project import PROJECT_ROLES

_ID_RE = re.compile(r"^\s*\d+\s*$")

# Upload filter: PDF, common images and Office documents.
ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
PDF_CONTENT_TYPE = "application/pdf"


def parse_id(raw: Any, missing: Type[VaultError], field: str) -> int:
    """
    Parse a positive integer identifier coming from a path or query string.

    Args:
        raw: value as received (str, int or None)
        missing: error raised when the value is absent
        field: parameter name, used in error messages

    Raises:
        missing: value is None, empty, or the string "null"/"undefined"
        InvalidIdFormat: value is present but not a positive integer
    """
    if raw is None:
        raise missing(f"{field} is required")
    if isinstance(raw, bool):
        raise InvalidIdFormat(f"{field} must be a positive integer, got {raw!r}", field=field)
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if text == "" or text.lower() in ("null", "undefined", "none"):
            raise missing(f"{field} is required")
        if not _ID_RE.match(text):
            raise InvalidIdFormat(f"{field} must be a positive integer, got {raw!r}", field=field)
        value = int(text)

    if value <= 0:
        raise InvalidIdFormat(f"{field} must be a positive integer, got {raw!r}", field=field)
    return value


def parse_optional_id(raw: Any, field: str) -> Optional[int]:
    """Like parse_id, but absent / "null" means None (used for root parents)."""
    if raw is None:
        return None
    if isinstance(raw, str) and raw.strip().lower() in ("", "null", "none", "undefined"):
        return None
    return parse_id(raw, InvalidIdFormat, field)


def validate_rect(rect: Rect, page_count: Optional[int] = None) -> None:
    """
    Validate an annotation rectangle.

    Rules:
    - all coordinates must be finite (no NaN / Infinity)
    - x, y must be >= 0
    - width, height must be > 0
    - page_number must be >= 1, and <= page_count when the version's page
      count is known

    Raises:
        InvalidRect: if validation fails
    """
    coords = {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}
    for name, value in coords.items():
        if not math.isfinite(value):
            raise InvalidRect(f"{name} must be a finite number, got {value}")
    if rect.x < 0 or rect.y < 0:
        raise InvalidRect(f"x and y must be >= 0, got ({rect.x}, {rect.y})")
    if rect.width <= 0:
        raise InvalidRect(f"width must be > 0, got {rect.width}")
    if rect.height <= 0:
        raise InvalidRect(f"height must be > 0, got {rect.height}")
    if rect.page_number < 1:
        raise InvalidRect(f"pageNumber must be >= 1, got {rect.page_number}")
    if page_count is not None and rect.page_number > page_count:
        raise InvalidRect(
            f"pageNumber {rect.page_number} is beyond the last page ({page_count})"
        )


def coerce_status(status: Optional[str]) -> str:
    """
    Normalize a status literal.

    Case and surrounding whitespace are ignored and legacy values are mapped
    to their current names. Anything else is rejected; unlike display
    options there is no silent default for a review status.
    """
    if not status or not isinstance(status, str):
        raise UnknownStatus(f"Unknown status {status!r}", allowed=list(ANNOTATION_STATUSES))

    cleaned = status.strip().lower()
    cleaned = LEGACY_STATUS_ALIASES.get(cleaned, cleaned)
    if cleaned not in ANNOTATION_STATUSES:
        raise UnknownStatus(f"Unknown status {status!r}", allowed=list(ANNOTATION_STATUSES))
    return cleaned


def coerce_role(role: Optional[str]) -> str:
    if not role or role.strip().lower() not in PROJECT_ROLES:
        raise InvalidRole(f"Unknown role {role!r}", allowed=list(PROJECT_ROLES))
    return role.strip().lower()


def duplicate_names(names: Sequence[str]) -> List[str]:
    """
    Return the duplicated names in `names` (sorted), empty if all unique.
    """
    seen = set()
    duplicates = set()
    for name in names:
        if name in seen:
            duplicates.add(name)
        seen.add(name)
    return sorted(duplicates)


def validate_upload(content_type: Optional[str], filename: Optional[str]) -> str:
    """
    Check an upload against the allowed content types.

    Returns the normalized content type.
    """
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype == "application/octet-stream" and (filename or "").lower().endswith(".pdf"):
        ctype = PDF_CONTENT_TYPE
    if ctype not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFileType(
            f"Invalid file type {content_type!r}. Only PDF, images, and Office documents are allowed."
        )
    return ctype


def parse_project_id(raw: Any) -> int:
    return parse_id(raw, MissingProjectId, "projectId")


def parse_folder_id(raw: Any) -> int:
    return parse_id(raw, MissingFolderId, "folderId")


def read_upload(stream: BinaryIO, max_bytes: int) -> bytes:
    """
    Read an uploaded stream, holding at most max_bytes + 1 bytes in memory.

    Raises:
        UploadTooLarge: the stream holds more than max_bytes
    """
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise UploadTooLarge(f"Upload exceeds {max_bytes} bytes", max_bytes=max_bytes)
    return data

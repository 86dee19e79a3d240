# services/api/models/pdf_version.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PdfVersion:
    """
    One immutable snapshot of a file's content.

    version_number starts at 1 and increases by exactly one per file.
    `metadata` holds what we learned from the content at upload time
    (page_count, size_bytes).
    """
    id: int
    file_id: int
    version_number: int
    content_ref: str
    uploaded_by: int
    description: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    annotation_count: int = 0

    @property
    def page_count(self) -> Optional[int]:
        value = self.metadata.get("page_count")
        return int(value) if value is not None else None

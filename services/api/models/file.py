# services/api/models/file.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class VaultFile:
    """
    A file stored in the vault. Always owned by exactly one folder, and by the
    same project as that folder.
    """
    id: int
    name: str
    folder_id: int
    project_id: int
    uploaded_by: int
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None

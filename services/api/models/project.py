# services/api/models/project.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# Project-level roles. `admin` and `superuser` are global roles that
# skip the membership lookup entirely.
PROJECT_ROLES = ("project_leader", "user", "observer", "admin", "superuser")
ELEVATED_ROLES = frozenset({"admin", "superuser"})
DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class User:
    """
    Authenticated caller as supplied by the identity layer.

    The vault never loads or stores users itself; it only reads the id and
    the global role handed to it by the request layer.
    """
    id: int
    role: str = DEFAULT_ROLE

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES


@dataclass
class Project:
    id: int
    name: str
    owner_id: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Membership:
    user_id: int
    project_id: int
    role: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None

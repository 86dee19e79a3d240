# services/api/core/identity.py
from typing import Optional

from fastapi import Header, HTTPException

from models import DEFAULT_ROLE, PROJECT_ROLES, User


def current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> User:
    """
    Caller identity as supplied by the gateway in front of the vault.

    - X-User-Id: integer user id (required, 401 when missing/invalid)
    - X-User-Role: global role, defaults to "user"
    """
    if not x_user_id or not x_user_id.strip().isdigit() or int(x_user_id) <= 0:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id")

    role = (x_user_role or DEFAULT_ROLE).strip().lower()
    if role not in PROJECT_ROLES:
        raise HTTPException(status_code=401, detail=f"Unknown X-User-Role '{x_user_role}'")

    return User(id=int(x_user_id), role=role)

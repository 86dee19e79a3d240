# services/api/routers/maintenance.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from core.hierarchy import HierarchyMaintainer
from core.identity import current_user
from core.validation import parse_project_id
from main import get_storage_adapter
from models import User
from schemas import FolderOut, IntegrityReport, LinearizeOut, LinearizeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance/projects/{project_id}", tags=["maintenance"])

Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


@router.post("/linearize", response_model=LinearizeOut)
def linearize(project_id: str, body: LinearizeRequest, user: CurrentUser, storage: Storage):
    """
    Relink the named folders into a single chain (first name becomes a root).
    All-or-nothing; project_leader or elevated role only.
    """
    maintainer = HierarchyMaintainer(storage)
    folders = maintainer.linearize_chain(user, project_id, body.names)
    pid = parse_project_id(project_id)
    return LinearizeOut(project_id=pid, folders=[FolderOut.model_validate(f) for f in folders])


@router.get("/integrity", response_model=IntegrityReport)
def integrity(project_id: str, user: CurrentUser, storage: Storage):
    return HierarchyMaintainer(storage).check_integrity(user, project_id)

# services/api/routers/folders.py
from __future__ import annotations

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from core.folders import FolderStore
from core.identity import current_user
from main import get_storage_adapter
from models import User
from schemas import FolderCreate, FolderOut, FolderReparent, FolderTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/folders", tags=["folders"])

Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


@router.post("", response_model=FolderOut, status_code=status.HTTP_201_CREATED)
def create_folder(project_id: str, body: FolderCreate, user: CurrentUser, storage: Storage):
    folder = FolderStore(storage).create_folder(user, project_id, body.name, body.parent_id)
    return FolderOut.model_validate(folder)


@router.get("", response_model=List[FolderOut])
def list_children(
    project_id: str,
    user: CurrentUser,
    storage: Storage,
    parent_id: Optional[str] = Query(None, alias="parentId", description="Omit for root folders"),
):
    folders = FolderStore(storage).list_children(user, project_id, parent_id)
    return [FolderOut.model_validate(f) for f in folders]


@router.get("/tree", response_model=FolderTree)
def folder_tree(project_id: str, user: CurrentUser, storage: Storage):
    """
    Whole folder hierarchy under the "Files" node.
    Clients cache this and refetch after any folder write.
    """
    return FolderStore(storage).tree(user, project_id)


@router.get("/{folder_id}/path", response_model=List[FolderOut])
def folder_path(project_id: str, folder_id: str, user: CurrentUser, storage: Storage):
    path = FolderStore(storage).resolve_path(user, project_id, folder_id)
    return [FolderOut.model_validate(f) for f in path]


@router.patch("/{folder_id}/parent", response_model=FolderOut)
def reparent_folder(project_id: str, folder_id: str, body: FolderReparent, user: CurrentUser, storage: Storage):
    folder = FolderStore(storage).reparent(user, project_id, folder_id, body.parent_id)
    return FolderOut.model_validate(folder)

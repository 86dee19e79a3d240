# services/api/routers/files.py
from __future__ import annotations

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from core.files import FileRegistry
from core.identity import current_user
from core.validation import read_upload
from core.versions import VersionChain
from main import get_content_store, get_settings, get_storage_adapter
from models import User
from schemas import FileOut, UploadOut, VersionOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


@router.get("/files", response_model=List[FileOut])
def list_files(
    user: CurrentUser,
    storage: Storage,
    project_id: Optional[str] = Query(None, alias="projectId"),
    folder_id: Optional[str] = Query(None, alias="folderId"),
):
    """
    Files directly inside one folder, newest first.

    Both ids are required; a missing folderId is MISSING_FOLDER_ID, never an
    empty list.
    """
    files = FileRegistry(storage).list_files(user, project_id, folder_id)
    return [FileOut.model_validate(f) for f in files]


@router.post(
    "/projects/{project_id}/folders/{folder_id}/files",
    response_model=UploadOut,
    status_code=status.HTTP_201_CREATED,
)
def upload_file(
    project_id: str,
    folder_id: str,
    user: CurrentUser,
    storage: Storage,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
):
    """Upload a file into a folder. PDF uploads also create version 1."""
    settings = get_settings()
    versions = VersionChain(
        storage,
        content_store=get_content_store(),
        conflict_retries=settings.version_conflict_retries,
    )
    max_bytes = settings.max_upload_mb * 1024 * 1024
    data = read_upload(file.file, max_bytes)
    vault_file, version = FileRegistry(storage).upload(
        user,
        project_id,
        folder_id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        data=data,
        versions=versions,
        description=description,
        max_bytes=max_bytes,
    )
    return UploadOut(
        file=FileOut.model_validate(vault_file),
        version=VersionOut.model_validate(version) if version else None,
    )


@router.get("/projects/{project_id}/files/{file_id}", response_model=FileOut)
def get_file(project_id: str, file_id: str, user: CurrentUser, storage: Storage):
    return FileOut.model_validate(FileRegistry(storage).get_file(user, project_id, file_id))

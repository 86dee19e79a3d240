# services/api/routers/versions.py
from __future__ import annotations

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse

from core.errors import UnsupportedFileType
from core.identity import current_user
from core.validation import PDF_CONTENT_TYPE, read_upload, validate_upload
from core.versions import VersionChain
from main import get_content_store, get_settings, get_storage_adapter
from models import User
from schemas import VersionOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["versions"])

Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


def _chain(storage) -> VersionChain:
    return VersionChain(
        storage,
        content_store=get_content_store(),
        conflict_retries=get_settings().version_conflict_retries,
    )


@router.post(
    "/files/{file_id}/versions",
    response_model=VersionOut,
    status_code=status.HTTP_201_CREATED,
)
def upload_version(
    project_id: str,
    file_id: str,
    user: CurrentUser,
    storage: Storage,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
):
    """
    Append a new PDF version. 409 VERSION_CONFLICT (retryable) if concurrent
    uploads kept colliding after our own retries.
    """
    if validate_upload(file.content_type, file.filename) != PDF_CONTENT_TYPE:
        raise UnsupportedFileType("Only PDF content can be added as a version")
    data = read_upload(file.file, get_settings().max_upload_mb * 1024 * 1024)

    version = _chain(storage).upload_version(
        user, project_id, file_id, data, file.filename or "upload.pdf", description
    )
    return VersionOut.model_validate(version)


@router.get("/files/{file_id}/versions", response_model=List[VersionOut])
def list_versions(project_id: str, file_id: str, user: CurrentUser, storage: Storage):
    versions = _chain(storage).list_versions(user, project_id, file_id)
    return [VersionOut.model_validate(v) for v in versions]


@router.get("/versions/{version_id}", response_model=VersionOut)
def get_version(project_id: str, version_id: str, user: CurrentUser, storage: Storage):
    return VersionOut.model_validate(_chain(storage).get_version(user, project_id, version_id))


@router.get("/versions/{version_id}/content")
def version_content(project_id: str, version_id: str, user: CurrentUser, storage: Storage):
    version, path = _chain(storage).content_path(user, project_id, version_id)
    filename = version.metadata.get("original_name") or f"version-{version.version_number}.pdf"
    return FileResponse(path, media_type=PDF_CONTENT_TYPE, filename=filename)

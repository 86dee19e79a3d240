# services/api/routers/annotations.py
from __future__ import annotations

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from core.annotations import AnnotationLedger
from core.identity import current_user
from main import get_storage_adapter
from models import User
from schemas import AnnotationCreate, AnnotationOut, AssigneeUpdate, StatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["annotations"])

Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


@router.post(
    "/projects/{project_id}/versions/{version_id}/annotations",
    response_model=AnnotationOut,
    status_code=status.HTTP_201_CREATED,
)
def add_annotation(project_id: str, version_id: str, body: AnnotationCreate, user: CurrentUser, storage: Storage):
    annotation = AnnotationLedger(storage).add_annotation(
        user,
        project_id,
        version_id,
        body.rect.to_rect(),
        color=body.color,
        comment=body.comment,
    )
    return AnnotationOut.model_validate(annotation)


@router.get("/projects/{project_id}/versions/{version_id}/annotations", response_model=List[AnnotationOut])
def list_annotations(project_id: str, version_id: str, user: CurrentUser, storage: Storage):
    annotations = AnnotationLedger(storage).list_annotations(user, project_id, version_id)
    return [AnnotationOut.model_validate(a) for a in annotations]


@router.patch("/projects/{project_id}/annotations/{annotation_id}/status", response_model=AnnotationOut)
def set_status(project_id: str, annotation_id: str, body: StatusUpdate, user: CurrentUser, storage: Storage):
    """Any status may move to any other; legacy "open"/"reviewing" are accepted."""
    annotation = AnnotationLedger(storage).set_status(user, project_id, annotation_id, body.status)
    return AnnotationOut.model_validate(annotation)


@router.patch("/projects/{project_id}/annotations/{annotation_id}/assignee", response_model=AnnotationOut)
def set_assignee(project_id: str, annotation_id: str, body: AssigneeUpdate, user: CurrentUser, storage: Storage):
    annotation = AnnotationLedger(storage).assign(user, project_id, annotation_id, body.assignee_id)
    return AnnotationOut.model_validate(annotation)


@router.get("/annotations/assigned", response_model=List[AnnotationOut])
def list_assigned(user: CurrentUser, storage: Storage):
    return [AnnotationOut.model_validate(a) for a in AnnotationLedger(storage).list_assigned(user)]

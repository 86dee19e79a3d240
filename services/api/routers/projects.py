# services/api/routers/projects.py
from __future__ import annotations

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from core.identity import current_user
from core.projects import ProjectService
from main import get_storage_adapter
from models import User
from schemas import MemberAdd, MembershipOut, ProjectCreate, ProjectOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

# ---- DI aliases (no default value allowed) ----
Storage = Annotated[object, Depends(get_storage_adapter)]
CurrentUser = Annotated[User, Depends(current_user)]


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, user: CurrentUser, storage: Storage):
    project = ProjectService(storage).create_project(user, body.name, body.description)
    return ProjectOut.model_validate(project)


@router.get("", response_model=List[ProjectOut])
def list_projects(user: CurrentUser, storage: Storage):
    """Elevated users see every project; everyone else only their own."""
    return [ProjectOut.model_validate(p) for p in ProjectService(storage).list_projects(user)]


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: str, user: CurrentUser, storage: Storage):
    return ProjectOut.model_validate(ProjectService(storage).get_project(user, project_id))


@router.get("/{project_id}/members", response_model=List[MembershipOut])
def list_members(project_id: str, user: CurrentUser, storage: Storage):
    members = ProjectService(storage).list_members(user, project_id)
    return [MembershipOut.model_validate(m) for m in members]


@router.post("/{project_id}/members", response_model=MembershipOut, status_code=status.HTTP_201_CREATED)
def add_member(project_id: str, body: MemberAdd, user: CurrentUser, storage: Storage):
    """Only a project_leader (or an elevated user) may add or re-role members."""
    membership = ProjectService(storage).add_member(user, project_id, body.user_id, body.role)
    return MembershipOut.model_validate(membership)

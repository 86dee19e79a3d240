"""
Projects and memberships.

The vault treats identity as external: users are never stored, only their ids
in membership rows. Creating a project makes its creator the project_leader.
"""
import logging
from typing import Any, List, Optional

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.errors import InvalidIdFormat, ProjectNotFound
from core.validation import coerce_role, parse_id, parse_project_id
from models import Membership, Project, User
from models.converters import membership_from_row, project_from_row

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, storage: StorageAdapter, guard: Optional[AccessGuard] = None):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)

    def create_project(self, user: User, name: str, description: Optional[str] = None) -> Project:
        row = self.storage.create_project(name=name, owner_id=user.id, description=description)
        logger.info(f"Project {row['id']} created by user {user.id}")
        return project_from_row(row)

    def list_projects(self, user: User) -> List[Project]:
        if user.is_elevated:
            rows = self.storage.list_projects()
        else:
            rows = self.storage.list_projects_for_user(user.id)
        return [project_from_row(r) for r in rows]

    def get_project(self, user: User, raw_project_id: Any) -> Project:
        project_id = parse_project_id(raw_project_id)
        self.guard.require(user, project_id, Action.READ)
        row = self.storage.get_project(project_id)
        if not row:
            raise ProjectNotFound(project_id=project_id)
        return project_from_row(row)

    def add_member(self, actor: User, raw_project_id: Any, raw_user_id: Any, role: str) -> Membership:
        project_id = parse_project_id(raw_project_id)
        user_id = parse_id(raw_user_id, InvalidIdFormat, "userId")
        role = coerce_role(role)

        self.guard.require_leader(actor, project_id, Action.WRITE)

        row = self.storage.upsert_membership(user_id, project_id, role)
        logger.info(f"User {user_id} is now {role} of project {project_id} (by {actor.id})")
        return membership_from_row(row)

    def list_members(self, user: User, raw_project_id: Any) -> List[Membership]:
        project_id = parse_project_id(raw_project_id)
        self.guard.require(user, project_id, Action.READ)
        if not self.storage.get_project(project_id):
            raise ProjectNotFound(project_id=project_id)
        return [membership_from_row(r) for r in self.storage.list_memberships(project_id)]

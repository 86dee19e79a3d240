"""
Access guard for the document vault.

Every vault operation asks the guard BEFORE looking anything up, so that a
caller without access to a project gets the same AccessDenied whether or not
the folder/file it asked for exists.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from adapters.base import StorageAdapter
from core.errors import AccessDenied
from models import User

logger = logging.getLogger(__name__)

NOT_A_MEMBER = "not a project member"
NOT_A_LEADER = "requires project_leader or an elevated role"


class Action(str, Enum):
    READ = "read"
    WRITE = "write"
    MAINTAIN = "maintain"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None
    role: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


class AccessGuard:
    """
    Resolves allow/deny for (user, project, action).

    Elevated roles are a capability checked first; everyone else needs a
    membership row. Membership grants every action on the project.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    def authorize(self, user: User, project_id: int, action: Action = Action.READ) -> AccessDecision:
        if user.is_elevated:
            return AccessDecision(True, role=user.role)

        membership = self.storage.get_membership(user.id, project_id)
        if membership is None:
            return AccessDecision(False, NOT_A_MEMBER)
        return AccessDecision(True, role=membership["role"])

    def require(self, user: User, project_id: int, action: Action = Action.READ) -> AccessDecision:
        decision = self.authorize(user, project_id, action)
        if not decision.allowed:
            self._deny(user, project_id, action, decision.reason)
        return decision

    def require_leader(self, user: User, project_id: int, action: Action = Action.MAINTAIN) -> AccessDecision:
        """Like require(), but members must also hold project_leader."""
        decision = self.require(user, project_id, action)
        if user.is_elevated or decision.role == "project_leader":
            return decision
        self._deny(user, project_id, action, NOT_A_LEADER)

    def _deny(self, user: User, project_id: int, action: Action, reason: Optional[str]):
        action_name = Action(action).value
        logger.warning(
            f"Access denied: user={user.id} role={user.role} project={project_id} "
            f"action={action_name} reason={reason}"
        )
        raise AccessDenied(
            f"User {user.id} may not {action_name} project {project_id}: {reason}",
            reason=reason,
            action=action_name,
        )

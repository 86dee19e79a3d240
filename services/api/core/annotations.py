"""
Annotation ledger.

Annotations are the only mutable layer on top of immutable versions. Status
moves freely between the six known values (no transition graph); the color
follows the status palette, and every change records who made it and when.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.errors import AnnotationNotFound, InvalidIdFormat, VersionNotFound
from core.validation import coerce_status, parse_id, parse_optional_id, parse_project_id, validate_rect
from models import DEFAULT_STATUS, STATUS_COLORS, Annotation, Rect, User
from models.converters import annotation_from_row, version_from_row

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AnnotationLedger:
    def __init__(self, storage: StorageAdapter, guard: Optional[AccessGuard] = None):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)

    def _annotation_in_project(self, project_id: int, annotation_id: int) -> Dict[str, Any]:
        row = self.storage.get_annotation(annotation_id)
        if not row or row["project_id"] != project_id:
            raise AnnotationNotFound(annotation_id=annotation_id)
        return row

    def _version_in_project(self, project_id: int, version_id: int):
        row = self.storage.get_version(version_id)
        if not row or row["project_id"] != project_id:
            raise VersionNotFound(version_id=version_id)
        return version_from_row(row)

    def add_annotation(
        self,
        user: User,
        raw_project_id: Any,
        raw_version_id: Any,
        rect: Union[Rect, Dict[str, Any]],
        color: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Annotation:
        """
        Attach a new annotation to a version. It starts as `new_comment`.

        Raises:
            InvalidRect: bad geometry, or a page beyond the version's last page
        """
        project_id = parse_project_id(raw_project_id)
        version_id = parse_id(raw_version_id, InvalidIdFormat, "versionId")
        if not isinstance(rect, Rect):
            rect = Rect.from_storage(rect)
        validate_rect(rect)

        self.guard.require(user, project_id, Action.WRITE)

        version = self._version_in_project(project_id, version_id)
        validate_rect(rect, version.page_count)

        row = self.storage.insert_annotation(
            pdf_version_id=version_id,
            rect=rect.to_storage(),
            color=color or STATUS_COLORS[DEFAULT_STATUS],
            comment=comment,
            status=DEFAULT_STATUS,
            created_by=user.id,
        )
        logger.info(f"Annotation {row['id']} added to version {version_id} by user {user.id}")
        return annotation_from_row(row)

    def set_status(self, user: User, raw_project_id: Any, raw_annotation_id: Any, new_status: Any) -> Annotation:
        project_id = parse_project_id(raw_project_id)
        annotation_id = parse_id(raw_annotation_id, InvalidIdFormat, "annotationId")
        status = coerce_status(new_status)

        self.guard.require(user, project_id, Action.WRITE)

        current = self._annotation_in_project(project_id, annotation_id)
        row = self.storage.update_annotation(
            annotation_id,
            {
                "status": status,
                "color": STATUS_COLORS[status],
                "status_updated_by": user.id,
                "status_updated_at": _utcnow(),
            },
        )
        logger.info(f"Annotation {annotation_id}: {current['status']} -> {status} by user {user.id}")
        return annotation_from_row(row)

    def assign(self, user: User, raw_project_id: Any, raw_annotation_id: Any, raw_assignee_id: Any) -> Annotation:
        """Set (or clear, with None) the user an annotation is assigned to."""
        project_id = parse_project_id(raw_project_id)
        annotation_id = parse_id(raw_annotation_id, InvalidIdFormat, "annotationId")
        assignee_id = parse_optional_id(raw_assignee_id, "assigneeId")

        self.guard.require(user, project_id, Action.WRITE)

        self._annotation_in_project(project_id, annotation_id)
        row = self.storage.update_annotation(annotation_id, {"assigned_to": assignee_id})
        logger.info(f"Annotation {annotation_id} assigned to {assignee_id} by user {user.id}")
        return annotation_from_row(row)

    def list_annotations(self, user: User, raw_project_id: Any, raw_version_id: Any) -> List[Annotation]:
        project_id = parse_project_id(raw_project_id)
        version_id = parse_id(raw_version_id, InvalidIdFormat, "versionId")

        self.guard.require(user, project_id, Action.READ)
        self._version_in_project(project_id, version_id)

        return [annotation_from_row(r) for r in self.storage.list_annotations(version_id)]

    def list_assigned(self, user: User) -> List[Annotation]:
        """Annotations assigned to the caller, limited to projects they can still access."""
        if user.is_elevated:
            project_ids = None
        else:
            project_ids = [p["id"] for p in self.storage.list_projects_for_user(user.id)]
        rows = self.storage.list_assigned_annotations(user.id, project_ids)
        return [annotation_from_row(r) for r in rows]

"""
Hierarchy maintenance: one-off structural corrections of a project's folders.

    linearize_chain(project, ["1", "2", "3", "4"])

makes "1" a root folder and each following folder a child of the one before
it. The whole relink runs in a single write transaction and the resulting
hierarchy is re-walked before commit, so a failure leaves nothing half done.
"""
import logging
from typing import Any, Dict, List, Sequence

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.errors import CorruptHierarchy, CycleDetected, ProjectNotFound
from core.validation import duplicate_names, parse_project_id
from models import Folder, User
from models.converters import folder_from_row
from models.folder import hierarchy_violations

logger = logging.getLogger(__name__)


class HierarchyMaintainer:
    def __init__(self, storage: StorageAdapter, guard: AccessGuard = None):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)

    def _require_project(self, user: User, raw_project_id: Any) -> int:
        project_id = parse_project_id(raw_project_id)
        self.guard.require_leader(user, project_id, Action.MAINTAIN)
        if not self.storage.get_project(project_id):
            raise ProjectNotFound(project_id=project_id)
        return project_id

    def linearize_chain(self, user: User, raw_project_id: Any, ordered_names: Sequence[str]) -> List[Folder]:
        """
        Relink the named folders into one chain, first name at the root.

        Raises:
            MissingFolders: some names are not folders of the project
            CycleDetected: a name appears more than once in the list
            CorruptHierarchy: the project would still contain a broken chain
        """
        project_id = self._require_project(user, raw_project_id)

        names = list(ordered_names)
        if not names:
            logger.info(f"linearize_chain: nothing to do for project {project_id}")
            return []

        dupes = duplicate_names(names)
        if dupes:
            raise CycleDetected(
                f"Folder names repeated in chain: {', '.join(dupes)}",
                names=dupes,
            )

        try:
            rows = self.storage.relink_folders(project_id, names)
        except CorruptHierarchy as e:
            logger.critical(f"linearize_chain rolled back for project {project_id}: {e.extra.get('problems')}")
            raise

        logger.info(f"linearize_chain: project {project_id} relinked {' -> '.join(names)} by user {user.id}")
        return [folder_from_row(r) for r in rows]

    def check_integrity(self, user: User, raw_project_id: Any) -> Dict[str, Any]:
        """
        Report stored data that breaks the vault invariants: folder chains that
        never reach a root, files outside a folder of their project, and
        version numbers that are not exactly 1..k.
        """
        project_id = self._require_project(user, raw_project_id)

        folder_problems = hierarchy_violations(self.storage.folder_parents(project_id))
        misplaced = [r["id"] for r in self.storage.misplaced_files(project_id)]

        version_problems = []
        for file_id, numbers in self.storage.version_numbers(project_id).items():
            if numbers != list(range(1, len(numbers) + 1)):
                version_problems.append({"file_id": file_id, "version_numbers": numbers})

        ok = not (folder_problems or misplaced or version_problems)
        if not ok:
            logger.critical(
                f"Integrity check failed for project {project_id}: "
                f"{len(folder_problems)} folder, {len(misplaced)} file, {len(version_problems)} version problems"
            )
        return {
            "project_id": project_id,
            "ok": ok,
            "folder_problems": folder_problems,
            "misplaced_file_ids": misplaced,
            "version_problems": version_problems,
        }

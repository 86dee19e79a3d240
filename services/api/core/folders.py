"""
Folder store: the per-project folder tree.

Invariants kept here and in the adapter:
- a folder's parent is null (root) or a folder of the same project
- following parent links from any folder reaches a root (no cycles)

Root folders are displayed under the project's "Files" node, which is not
stored anywhere.
"""
import logging
from typing import Any, Dict, List, Optional

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.errors import CorruptHierarchy, FolderNotFound, InvalidParent
from core.validation import parse_folder_id, parse_optional_id, parse_project_id
from models import Folder, User
from models.converters import folder_from_row
from models.folder import build_tree, check_reparent, hierarchy_violations, walk_to_root

logger = logging.getLogger(__name__)

ROOT_NODE_NAME = "Files"


class FolderStore:
    def __init__(self, storage: StorageAdapter, guard: Optional[AccessGuard] = None):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)

    def _folder_in_project(self, project_id: int, folder_id: int) -> Folder:
        row = self.storage.get_folder(folder_id)
        if not row or row["project_id"] != project_id:
            raise FolderNotFound(folder_id=folder_id)
        return folder_from_row(row)

    def create_folder(
        self,
        user: User,
        raw_project_id: Any,
        name: str,
        raw_parent_id: Any = None,
    ) -> Folder:
        project_id = parse_project_id(raw_project_id)
        parent_id = parse_optional_id(raw_parent_id, "parentId")

        self.guard.require(user, project_id, Action.WRITE)

        row = self.storage.insert_folder(project_id, name.strip(), parent_id, user.id)
        logger.info(f"Folder {row['id']} ({row['name']!r}) created in project {project_id} under {parent_id}")
        return folder_from_row(row)

    def reparent(self, user: User, raw_project_id: Any, raw_folder_id: Any, raw_new_parent_id: Any) -> Folder:
        """
        Move a folder under a new parent (None moves it to the root).

        Raises CycleDetected when the new parent is the folder itself or one of
        its descendants; neither folder is changed in that case.
        """
        project_id = parse_project_id(raw_project_id)
        folder_id = parse_folder_id(raw_folder_id)
        new_parent_id = parse_optional_id(raw_new_parent_id, "parentId")

        self.guard.require(user, project_id, Action.WRITE)

        folder = self._folder_in_project(project_id, folder_id)
        if new_parent_id is not None:
            parent = self.storage.get_folder(new_parent_id)
            if not parent or parent["project_id"] != project_id:
                raise InvalidParent(
                    f"Folder {new_parent_id} is not a folder of project {project_id}",
                    parent_id=new_parent_id,
                )

        # Fast rejection; the adapter repeats this inside the write transaction.
        parents = self.storage.folder_parents(project_id)
        try:
            check_reparent(parents, folder_id, new_parent_id)
        except CorruptHierarchy:
            logger.critical(f"Corrupt folder hierarchy in project {project_id} (reparent {folder_id})")
            raise

        row = self.storage.reparent_folder(folder_id, new_parent_id)
        logger.info(
            f"Folder {folder_id} moved from parent {folder.parent_id} to {new_parent_id} "
            f"in project {project_id} by user {user.id}"
        )
        return folder_from_row(row)

    def list_children(self, user: User, raw_project_id: Any, raw_parent_id: Any = None) -> List[Folder]:
        project_id = parse_project_id(raw_project_id)
        parent_id = parse_optional_id(raw_parent_id, "parentId")

        self.guard.require(user, project_id, Action.READ)

        if parent_id is not None:
            self._folder_in_project(project_id, parent_id)
        return [folder_from_row(r) for r in self.storage.list_child_folders(project_id, parent_id)]

    def resolve_path(self, user: User, raw_project_id: Any, raw_folder_id: Any) -> List[Folder]:
        """Folders from the root down to `folder_id` (inclusive)."""
        project_id = parse_project_id(raw_project_id)
        folder_id = parse_folder_id(raw_folder_id)

        self.guard.require(user, project_id, Action.READ)
        self._folder_in_project(project_id, folder_id)

        by_id = {r["id"]: folder_from_row(r) for r in self.storage.list_folders(project_id)}
        parents = {fid: f.parent_id for fid, f in by_id.items()}
        try:
            chain = walk_to_root(parents, folder_id)
        except CorruptHierarchy:
            logger.critical(f"Corrupt folder hierarchy in project {project_id} (path of {folder_id})")
            raise
        return [by_id[fid] for fid in reversed(chain)]

    def tree(self, user: User, raw_project_id: Any) -> Dict[str, Any]:
        """The whole hierarchy nested under the "Files" node."""
        project_id = parse_project_id(raw_project_id)
        self.guard.require(user, project_id, Action.READ)

        folders = [folder_from_row(r) for r in self.storage.list_folders(project_id)]
        problems = hierarchy_violations({f.id: f.parent_id for f in folders})
        if problems:
            logger.critical(f"Corrupt folder hierarchy in project {project_id}: {problems}")
            raise CorruptHierarchy(project_id=project_id, problems=problems)

        return {
            "id": None,
            "name": ROOT_NODE_NAME,
            "project_id": project_id,
            "children": build_tree(folders),
        }

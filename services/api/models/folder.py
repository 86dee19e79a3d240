# services/api/models/folder.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.errors import CorruptHierarchy, CycleDetected


@dataclass
class Folder:
    """
    Domain model for a vault folder.

    `parent_id` is None for root folders. Root folders are shown under the
    project's top-level "Files" node; that node is not stored anywhere.
    """
    id: int
    name: str
    project_id: int
    parent_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


# ---------- hierarchy helpers ----------
#
# All helpers work on a plain {folder_id: parent_id} mapping for ONE project,
# so the adapter can run them inside the same transaction that writes.

def walk_to_root(parents: Mapping[int, Optional[int]], folder_id: int) -> List[int]:
    """
    Follow parent links from `folder_id` up to its root.

    Returns [folder_id, parent, grandparent, ..., root].

    Raises:
        CorruptHierarchy: a parent id is not in `parents` (dangling or in
            another project) or the walk revisits a folder (stored loop).
    """
    chain: List[int] = []
    seen = set()
    current: Optional[int] = folder_id

    while current is not None:
        if current not in parents:
            if chain:
                msg = f"Folder {chain[-1]} references missing parent {current}"
            else:
                msg = f"Folder {current} does not exist in this project"
            raise CorruptHierarchy(msg, folder_id=folder_id)
        if current in seen:
            raise CorruptHierarchy(
                f"Folder {folder_id} sits on a parent loop through folder {current}",
                folder_id=folder_id,
            )
        seen.add(current)
        chain.append(current)
        current = parents[current]

    return chain


def check_reparent(
    parents: Mapping[int, Optional[int]],
    folder_id: int,
    new_parent_id: Optional[int],
) -> None:
    """
    Reject a move that would put `folder_id` under itself or one of its
    descendants. Moving to the root (None) is always acyclic.
    """
    if new_parent_id is None:
        return
    if new_parent_id == folder_id:
        raise CycleDetected(
            "A folder cannot be its own parent",
            folder_id=folder_id,
            new_parent_id=new_parent_id,
        )
    if folder_id in walk_to_root(parents, new_parent_id):
        raise CycleDetected(
            f"Folder {new_parent_id} is a descendant of folder {folder_id}",
            folder_id=folder_id,
            new_parent_id=new_parent_id,
        )


def plan_linear_chain(folder_ids: Sequence[int]) -> Dict[int, Optional[int]]:
    """
    Parent assignment that turns `folder_ids` into a single chain:
    first -> None, every next one -> the one before it.
    """
    if len(set(folder_ids)) != len(folder_ids):
        raise CycleDetected("The same folder appears twice in the chain")

    plan: Dict[int, Optional[int]] = {}
    previous: Optional[int] = None
    for fid in folder_ids:
        plan[fid] = previous
        previous = fid
    return plan


def hierarchy_violations(parents: Mapping[int, Optional[int]]) -> List[str]:
    """Messages for every folder whose parent chain does not reach a root."""
    problems = []
    for fid in sorted(parents):
        try:
            walk_to_root(parents, fid)
        except CorruptHierarchy as e:
            problems.append(e.message)
    return problems


def build_tree(folders: Iterable[Folder]) -> List[Dict[str, Any]]:
    """
    Nest folders under their parents. Callers must validate the hierarchy
    first; folders on a broken chain would otherwise be silently dropped.
    """
    children: Dict[Optional[int], List[Folder]] = {}
    for f in sorted(folders, key=lambda f: (f.name, f.id)):
        children.setdefault(f.parent_id, []).append(f)

    def _node(folder: Folder) -> Dict[str, Any]:
        return {
            "id": folder.id,
            "name": folder.name,
            "parent_id": folder.parent_id,
            "children": [_node(c) for c in children.get(folder.id, [])],
        }

    return [_node(root) for root in children.get(None, [])]

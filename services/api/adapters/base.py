"""
Storage adapter interface for the document vault.
Defines the contract that all storage backends must implement.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    Adapters return plain dict rows; `models.converters` turns them into
    domain objects. Adapters own transactions: every write method runs in a
    single transaction and re-checks its invariants inside it, so callers
    never need to hold a transaction open across calls.
    """

    def ping(self) -> bool:
        ...

    # ========== Projects & memberships ==========

    def create_project(self, name: str, owner_id: int, description: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a project and, in the same transaction, a `project_leader`
        membership for its owner.
        """
        ...

    def get_project(self, project_id: int) -> Optional[Dict[str, Any]]:
        ...

    def list_projects(self) -> List[Dict[str, Any]]:
        ...

    def list_projects_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Projects the user holds a membership row for."""
        ...

    def get_membership(self, user_id: int, project_id: int) -> Optional[Dict[str, Any]]:
        ...

    def upsert_membership(self, user_id: int, project_id: int, role: str) -> Dict[str, Any]:
        """Create the membership, or update its role if it already exists."""
        ...

    def list_memberships(self, project_id: int) -> List[Dict[str, Any]]:
        ...

    # ========== Folders ==========

    def insert_folder(
        self,
        project_id: int,
        name: str,
        parent_id: Optional[int],
        created_by: Optional[int],
    ) -> Dict[str, Any]:
        """
        Raises:
            ProjectNotFound: project does not exist
            InvalidParent: parent_id is not a folder of project_id
        """
        ...

    def get_folder(self, folder_id: int) -> Optional[Dict[str, Any]]:
        ...

    def list_folders(self, project_id: int) -> List[Dict[str, Any]]:
        ...

    def list_child_folders(self, project_id: int, parent_id: Optional[int]) -> List[Dict[str, Any]]:
        """Direct children of parent_id; root folders when parent_id is None."""
        ...

    def folder_parents(self, project_id: int) -> Dict[int, Optional[int]]:
        """{folder_id: parent_id} for every folder of the project."""
        ...

    def reparent_folder(self, folder_id: int, new_parent_id: Optional[int]) -> Dict[str, Any]:
        """
        Move a folder. The cycle check runs inside the updating transaction.

        Raises:
            FolderNotFound, InvalidParent, CycleDetected, CorruptHierarchy
        """
        ...

    def relink_folders(self, project_id: int, ordered_names: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Chain the named folders (first becomes a root) in one transaction.

        Raises:
            MissingFolders: some names do not exist in the project
            CycleDetected / CorruptHierarchy: the result would not be a tree
        """
        ...

    # ========== Files ==========

    def insert_file(
        self,
        project_id: int,
        folder_id: int,
        name: str,
        uploaded_by: int,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            MissingFolder: folder_id is not a folder of project_id
        """
        ...

    def get_file(self, file_id: int) -> Optional[Dict[str, Any]]:
        ...

    def list_files(self, project_id: int, folder_id: int) -> List[Dict[str, Any]]:
        """Files directly in folder_id (never descendants), newest first."""
        ...

    def discard_file(self, file_id: int) -> bool:
        """
        Remove a file row that never received a version (failed upload).
        Files with versions are left alone. Returns True if a row was removed.
        """
        ...

    def misplaced_files(self, project_id: int) -> List[Dict[str, Any]]:
        """Files whose folder is missing or belongs to another project."""
        ...

    # ========== Versions ==========

    def insert_version(
        self,
        file_id: int,
        content_ref: str,
        description: Optional[str],
        uploaded_by: int,
        content_meta: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Append the next version (max + 1, or 1).

        Raises:
            FileNotFound: file does not exist
            VersionConflict: a concurrent insert took the same number
        """
        ...

    def get_version(self, version_id: int) -> Optional[Dict[str, Any]]:
        """Version row plus the owning file's project_id."""
        ...

    def list_versions(self, file_id: int) -> List[Dict[str, Any]]:
        """Ascending by version_number, with annotation_count."""
        ...

    def version_numbers(self, project_id: int) -> Dict[int, List[int]]:
        """{file_id: sorted version numbers} for every file of the project."""
        ...

    # ========== Annotations ==========

    def insert_annotation(
        self,
        pdf_version_id: int,
        rect: Dict[str, Any],
        color: str,
        comment: Optional[str],
        status: str,
        created_by: int,
    ) -> Dict[str, Any]:
        ...

    def get_annotation(self, annotation_id: int) -> Optional[Dict[str, Any]]:
        """Annotation row plus project_id and file_id of its version."""
        ...

    def list_annotations(self, pdf_version_id: int) -> List[Dict[str, Any]]:
        ...

    def update_annotation(self, annotation_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        """Only status/color/assignee fields may be updated."""
        ...

    def list_assigned_annotations(
        self,
        user_id: int,
        project_ids: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        """Annotations assigned to user_id, optionally limited to project_ids."""
        ...

"""
File registry: every file belongs to exactly one folder of its project.

`list_files` is the main read path and validates strictly, in order:
projectId, folderId, access, folder existence. A request without a folder
is rejected rather than answered with "every file in the project".
"""
import logging
from typing import Any, List, Optional, Tuple

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.content_store import pdf_metadata
from core.errors import FileNotFound, FolderNotFound, InvalidIdFormat, MissingFolder, UploadTooLarge
from core.validation import PDF_CONTENT_TYPE, parse_folder_id, parse_id, parse_project_id, validate_upload
from core.versions import VersionChain
from models import PdfVersion, User, VaultFile
from models.converters import file_from_row

logger = logging.getLogger(__name__)


class FileRegistry:
    def __init__(self, storage: StorageAdapter, guard: Optional[AccessGuard] = None):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)

    def create_file(
        self,
        user: User,
        raw_project_id: Any,
        raw_folder_id: Any,
        name: str,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> VaultFile:
        """
        Register a file inside an existing folder of the project.

        Raises:
            MissingFolder: folderId absent, or not a folder of the project
        """
        project_id = parse_project_id(raw_project_id)
        folder_id = parse_id(raw_folder_id, MissingFolder, "folderId")

        self.guard.require(user, project_id, Action.WRITE)

        row = self.storage.insert_file(
            project_id=project_id,
            folder_id=folder_id,
            name=name,
            uploaded_by=user.id,
            file_type=file_type,
            file_size=file_size,
        )
        logger.info(f"File {row['id']} ({name!r}) created in folder {folder_id} of project {project_id}")
        return file_from_row(row)

    def upload(
        self,
        user: User,
        raw_project_id: Any,
        raw_folder_id: Any,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        versions: VersionChain,
        description: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ) -> Tuple[VaultFile, Optional[PdfVersion]]:
        """
        Create a file from an upload. PDFs also get their first version.

        The content is checked before anything is written. If storing the
        content or inserting version 1 fails afterwards, the new file row is
        removed again, so a rejected upload leaves no file row behind.
        """
        project_id = parse_project_id(raw_project_id)
        folder_id = parse_id(raw_folder_id, MissingFolder, "folderId")
        ctype = validate_upload(content_type, filename)
        if max_bytes is not None and len(data) > max_bytes:
            raise UploadTooLarge(size_bytes=len(data), max_bytes=max_bytes)

        self.guard.require(user, project_id, Action.WRITE)

        if ctype == PDF_CONTENT_TYPE:
            # Raises InvalidContent for unreadable PDFs.
            pdf_metadata(data)

        vault_file = self.create_file(user, project_id, folder_id, filename, ctype, len(data))
        version = None
        if ctype == PDF_CONTENT_TYPE:
            try:
                version = versions.store_and_insert(vault_file.id, data, filename, description, user.id)
            except Exception:
                if self.storage.discard_file(vault_file.id):
                    logger.warning(f"Upload of {filename!r} failed; removed file {vault_file.id} again")
                raise
        return vault_file, version

    def list_files(self, user: User, raw_project_id: Any, raw_folder_id: Any) -> List[VaultFile]:
        """Files directly inside the folder, newest first. Never descends."""
        project_id = parse_project_id(raw_project_id)
        folder_id = parse_folder_id(raw_folder_id)

        self.guard.require(user, project_id, Action.READ)

        folder = self.storage.get_folder(folder_id)
        if not folder or folder["project_id"] != project_id:
            raise FolderNotFound(folder_id=folder_id)

        return [file_from_row(r) for r in self.storage.list_files(project_id, folder_id)]

    def get_file(self, user: User, raw_project_id: Any, raw_file_id: Any) -> VaultFile:
        project_id = parse_project_id(raw_project_id)
        file_id = parse_id(raw_file_id, InvalidIdFormat, "fileId")

        self.guard.require(user, project_id, Action.READ)

        row = self.storage.get_file(file_id)
        if not row or row["project_id"] != project_id:
            raise FileNotFound(file_id=file_id)
        return file_from_row(row)

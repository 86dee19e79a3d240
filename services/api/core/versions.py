"""
Version chain: append-only, immutable content snapshots per file.

Version numbers are assigned by the adapter inside a write transaction
(max + 1, or 1). A concurrent upload that lost the race surfaces as
VersionConflict; we retry a few times with backoff before giving up.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from adapters.base import StorageAdapter
from core.access import AccessGuard, Action
from core.content_store import LocalContentStore, pdf_metadata
from core.errors import FileNotFound, InvalidIdFormat, VersionConflict, VersionNotFound
from core.validation import parse_id, parse_project_id
from models import PdfVersion, User, VaultFile
from models.converters import file_from_row, version_from_row

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_RETRIES = 3


def _log_conflict(retry_state) -> None:
    logger.warning(f"Version number conflict, retrying (attempt {retry_state.attempt_number})")


class VersionChain:
    def __init__(
        self,
        storage: StorageAdapter,
        guard: Optional[AccessGuard] = None,
        content_store: Optional[LocalContentStore] = None,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
    ):
        self.storage = storage
        self.guard = guard or AccessGuard(storage)
        self.content_store = content_store
        self.conflict_retries = max(1, conflict_retries)

    def _file_in_project(self, project_id: int, file_id: int) -> VaultFile:
        row = self.storage.get_file(file_id)
        if not row or row["project_id"] != project_id:
            raise FileNotFound(file_id=file_id)
        return file_from_row(row)

    def _insert(
        self,
        file_id: int,
        content_ref: str,
        description: Optional[str],
        uploaded_by: int,
        content_meta: Optional[Dict[str, Any]],
    ) -> PdfVersion:
        retrying = Retrying(
            stop=stop_after_attempt(self.conflict_retries),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
            retry=retry_if_exception_type(VersionConflict),
            before_sleep=_log_conflict,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                row = self.storage.insert_version(
                    file_id=file_id,
                    content_ref=content_ref,
                    description=description,
                    uploaded_by=uploaded_by,
                    content_meta=content_meta,
                )
        logger.info(f"File {file_id}: version {row['version_number']} added by user {uploaded_by}")
        return version_from_row(row)

    def add_version(
        self,
        user: User,
        raw_project_id: Any,
        raw_file_id: Any,
        content_ref: str,
        description: Optional[str] = None,
        content_meta: Optional[Dict[str, Any]] = None,
    ) -> PdfVersion:
        """Append a version that references already-stored content."""
        project_id = parse_project_id(raw_project_id)
        file_id = parse_id(raw_file_id, InvalidIdFormat, "fileId")

        self.guard.require(user, project_id, Action.WRITE)
        self._file_in_project(project_id, file_id)

        return self._insert(file_id, content_ref, description, user.id, content_meta)

    def upload_version(
        self,
        user: User,
        raw_project_id: Any,
        raw_file_id: Any,
        data: bytes,
        filename: str,
        description: Optional[str] = None,
    ) -> PdfVersion:
        """Validate and store PDF bytes, then append them as the next version."""
        project_id = parse_project_id(raw_project_id)
        file_id = parse_id(raw_file_id, InvalidIdFormat, "fileId")

        self.guard.require(user, project_id, Action.WRITE)
        self._file_in_project(project_id, file_id)

        return self.store_and_insert(file_id, data, filename, description, user.id)

    def store_and_insert(
        self,
        file_id: int,
        data: bytes,
        filename: str,
        description: Optional[str],
        uploaded_by: int,
    ) -> PdfVersion:
        """Callers must have authorized and resolved `file_id` already."""
        if self.content_store is None:
            raise RuntimeError("VersionChain has no content store configured")

        meta = pdf_metadata(data)
        content_ref = self.content_store.save(data, filename)
        meta["original_name"] = filename
        try:
            return self._insert(file_id, content_ref, description, uploaded_by, meta)
        except Exception:
            self.content_store.discard(content_ref)
            raise

    def list_versions(self, user: User, raw_project_id: Any, raw_file_id: Any) -> List[PdfVersion]:
        project_id = parse_project_id(raw_project_id)
        file_id = parse_id(raw_file_id, InvalidIdFormat, "fileId")

        self.guard.require(user, project_id, Action.READ)
        self._file_in_project(project_id, file_id)

        return [version_from_row(r) for r in self.storage.list_versions(file_id)]

    def get_version(self, user: User, raw_project_id: Any, raw_version_id: Any) -> PdfVersion:
        project_id = parse_project_id(raw_project_id)
        version_id = parse_id(raw_version_id, InvalidIdFormat, "versionId")

        self.guard.require(user, project_id, Action.READ)
        return self.version_in_project(project_id, version_id)

    def version_in_project(self, project_id: int, version_id: int) -> PdfVersion:
        row = self.storage.get_version(version_id)
        if not row or row["project_id"] != project_id:
            raise VersionNotFound(version_id=version_id)
        return version_from_row(row)

    def content_path(self, user: User, raw_project_id: Any, raw_version_id: Any) -> Tuple[PdfVersion, Path]:
        version = self.get_version(user, raw_project_id, raw_version_id)
        if self.content_store is None or not self.content_store.exists(version.content_ref):
            logger.error(f"Content for version {version.id} is missing ({version.content_ref})")
            raise VersionNotFound(f"Content for version {version.id} is not available", version_id=version.id)
        return version, self.content_store.path_for(version.content_ref)

"""
Typed errors raised by the document vault.

Every error carries a stable `code` (returned as `detail` at the HTTP
boundary), the HTTP status it maps to, and optional extra fields that are
merged into the response body.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class VaultError(Exception):
    code = "VAULT_ERROR"
    status_code = 400
    default_message = "Vault error"
    retryable = False

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.code, "message": self.message}
        if self.retryable:
            body["retryable"] = True
        body.update(self.extra)
        return body


# ---------- boundary validation (never reaches storage) ----------

class MissingProjectId(VaultError):
    code = "MISSING_PROJECT_ID"
    default_message = "projectId is required"


class MissingFolderId(VaultError):
    code = "MISSING_FOLDER_ID"
    default_message = "folderId is required"


class InvalidIdFormat(VaultError):
    code = "INVALID_ID_FORMAT"
    default_message = "Identifier must be a positive integer"


# ---------- access ----------

class AccessDenied(VaultError):
    code = "ACCESS_DENIED"
    status_code = 403
    default_message = "No access to this project"


# ---------- not found ----------

class ProjectNotFound(VaultError):
    code = "PROJECT_NOT_FOUND"
    status_code = 404
    default_message = "Project not found"


class FolderNotFound(VaultError):
    code = "FOLDER_NOT_FOUND"
    status_code = 404
    default_message = "Folder not found in this project"


class FileNotFound(VaultError):
    code = "FILE_NOT_FOUND"
    status_code = 404
    default_message = "File not found in this project"


class VersionNotFound(VaultError):
    code = "VERSION_NOT_FOUND"
    status_code = 404
    default_message = "Version not found in this project"


class AnnotationNotFound(VaultError):
    code = "ANNOTATION_NOT_FOUND"
    status_code = 404
    default_message = "Annotation not found in this project"


# ---------- write validation ----------

class MissingFolder(VaultError):
    code = "MISSING_FOLDER"
    default_message = "A file must be created inside an existing folder of its project"


class InvalidParent(VaultError):
    code = "INVALID_PARENT"
    default_message = "Parent folder does not belong to this project"


class InvalidRect(VaultError):
    code = "INVALID_RECT"
    default_message = "Annotation rectangle is invalid"


class UnknownStatus(VaultError):
    code = "UNKNOWN_STATUS"
    default_message = "Unknown annotation status"


class InvalidRole(VaultError):
    code = "INVALID_ROLE"
    default_message = "Unknown project role"


class InvalidContent(VaultError):
    code = "INVALID_CONTENT"
    default_message = "Uploaded content is not a readable PDF"


class UnsupportedFileType(VaultError):
    code = "UNSUPPORTED_FILE_TYPE"
    status_code = 415
    default_message = "Only PDF, images and Office documents are allowed"


class MissingFolders(VaultError):
    code = "MISSING_FOLDERS"
    default_message = "Some folders were not found in this project"

    def __init__(self, names, message: Optional[str] = None) -> None:
        self.names = list(names)
        super().__init__(
            message or f"Folders not found: {', '.join(self.names)}",
            missing=self.names,
        )


# ---------- structure / concurrency ----------

class CycleDetected(VaultError):
    code = "CYCLE_DETECTED"
    status_code = 409
    default_message = "Move would create a cycle in the folder hierarchy"


class VersionConflict(VaultError):
    code = "VERSION_CONFLICT"
    status_code = 409
    retryable = True
    default_message = "Another version was added concurrently; retry the upload"


class CorruptHierarchy(VaultError):
    code = "CORRUPT_HIERARCHY"
    status_code = 500
    default_message = "Folder hierarchy is corrupt"


class UploadTooLarge(VaultError):
    code = "UPLOAD_TOO_LARGE"
    status_code = 413
    default_message = "Uploaded file exceeds the configured size limit"


class WriteConflict(VaultError):
    code = "WRITE_CONFLICT"
    status_code = 409
    retryable = True
    default_message = "A concurrent change touched the same data; retry the request"

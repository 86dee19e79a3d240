from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from . import Annotation, Folder, Membership, PdfVersion, Project, Rect, VaultFile


def _json_dict(v: Any) -> Dict[str, Any]:
    """
    JSON columns come back as dicts from SQLAlchemy, but older rows (or a
    driver without native JSON) may hand us a string.
    """
    if v is None:
        return {}
    if isinstance(v, dict):
        return v
    try:
        parsed = json.loads(v)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def project_from_row(row: Mapping[str, Any]) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        owner_id=row["owner_id"],
        description=row.get("description"),
        created_at=row.get("created_at"),
    )


def membership_from_row(row: Mapping[str, Any]) -> Membership:
    return Membership(
        id=row.get("id"),
        user_id=row["user_id"],
        project_id=row["project_id"],
        role=row["role"],
        created_at=row.get("created_at"),
    )


def folder_from_row(row: Mapping[str, Any]) -> Folder:
    return Folder(
        id=row["id"],
        name=row["name"],
        project_id=row["project_id"],
        parent_id=row.get("parent_id"),
        created_by=row.get("created_by"),
        created_at=row.get("created_at"),
    )


def file_from_row(row: Mapping[str, Any]) -> VaultFile:
    return VaultFile(
        id=row["id"],
        name=row["name"],
        folder_id=row["folder_id"],
        project_id=row["project_id"],
        uploaded_by=row["uploaded_by"],
        file_type=row.get("file_type"),
        file_size=row.get("file_size"),
        created_at=row.get("created_at"),
    )


def version_from_row(row: Mapping[str, Any]) -> PdfVersion:
    return PdfVersion(
        id=row["id"],
        file_id=row["file_id"],
        version_number=int(row["version_number"]),
        content_ref=row["content_ref"],
        uploaded_by=row["uploaded_by"],
        description=row.get("description"),
        uploaded_at=row.get("uploaded_at"),
        metadata=_json_dict(row.get("content_meta")),
        annotation_count=int(row.get("annotation_count") or 0),
    )


def annotation_from_row(row: Mapping[str, Any]) -> Annotation:
    return Annotation(
        id=row["id"],
        pdf_version_id=row["pdf_version_id"],
        rect=Rect.from_storage(_json_dict(row.get("rect_json"))),
        color=row["color"],
        status=row["status"],
        created_by=row["created_by"],
        comment=row.get("comment"),
        assigned_to=row.get("assigned_to"),
        created_at=row.get("created_at"),
        status_updated_by=row.get("status_updated_by"),
        status_updated_at=row.get("status_updated_at"),
    )

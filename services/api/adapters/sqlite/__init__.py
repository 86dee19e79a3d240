# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    and_,
    create_engine,
    delete,
    event,
    func,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.pool import StaticPool

from core.errors import (
    CorruptHierarchy,
    FileNotFound,
    FolderNotFound,
    InvalidParent,
    MissingFolder,
    MissingFolders,
    ProjectNotFound,
    VersionConflict,
    WriteConflict,
)
from models.annotation import ANNOTATION_STATUSES
from models.folder import check_reparent, hierarchy_violations, plan_linear_chain

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in db_url


def make_engine(db_url: str, **engine_kwargs: Any) -> Engine:
    if db_url.startswith("sqlite"):
        if _is_memory_url(db_url):
            # One shared connection, otherwise every checkout sees an empty DB
            engine_kwargs.setdefault("poolclass", StaticPool)
        else:
            _ensure_dir(db_url.replace("sqlite:///", "", 1))
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})

    engine = create_engine(db_url, future=True, pool_pre_ping=True, **engine_kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
            if isinstance(dbapi_connection, sqlite3.Connection):
                # pysqlite would otherwise defer BEGIN until the first write,
                # leaving our pre-write reads outside the transaction.
                dbapi_connection.isolation_level = None
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA synchronous=NORMAL;")
                cursor.execute("PRAGMA foreign_keys=ON;")
                cursor.execute("PRAGMA busy_timeout=5000;")
                cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):  # type: ignore
            mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
            conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("description", Text),
    Column("owner_id", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
)

project_memberships = Table(
    "project_memberships",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    Column("role", String, nullable=False),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    UniqueConstraint("user_id", "project_id", name="uq_membership_user_project"),
)

folders = Table(
    "folders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("parent_id", Integer, ForeignKey("folders.id"), nullable=True),
    Column("project_id", Integer, ForeignKey("projects.id"), nullable=False),
    Column("created_by", Integer),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_folder_not_own_parent"),
)

files = Table(
    "files",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("folder_id", Integer, ForeignKey("folders.id"), nullable=False),
    Column("project_id", Integer, ForeignKey("projects.id"), nullable=False),
    Column("file_type", String),
    Column("file_size", Integer),
    Column("uploaded_by", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
)

pdf_versions = Table(
    "pdf_versions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("file_id", Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False),
    Column("version_number", Integer, nullable=False),
    Column("content_ref", Text, nullable=False),
    Column("description", Text),
    Column("content_meta", JSON),
    Column("uploaded_at", DateTime, nullable=False, default=_utcnow),
    Column("uploaded_by", Integer, nullable=False),
    UniqueConstraint("file_id", "version_number", name="uq_version_file_number"),
    CheckConstraint("version_number >= 1", name="ck_version_number"),
)

_status_list = ", ".join(f"'{s}'" for s in ANNOTATION_STATUSES)

pdf_annotations = Table(
    "pdf_annotations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pdf_version_id", Integer, ForeignKey("pdf_versions.id", ondelete="CASCADE"), nullable=False),
    Column("rect_json", JSON, nullable=False),
    Column("color", String, nullable=False),
    Column("comment", Text),
    Column("status", String, nullable=False, default="new_comment"),
    Column("assigned_to", Integer),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    Column("created_by", Integer, nullable=False),
    Column("status_updated_at", DateTime),
    Column("status_updated_by", Integer),
    CheckConstraint(f"status IN ({_status_list})", name="ck_annotation_status"),
)

Index("idx_memberships_project", project_memberships.c.project_id)
Index("idx_folders_project_parent", folders.c.project_id, folders.c.parent_id)
Index("idx_files_project_folder", files.c.project_id, files.c.folder_id)
Index("idx_pdf_versions_file_id", pdf_versions.c.file_id)
Index("idx_pdf_annotations_pdf_version_id", pdf_annotations.c.pdf_version_id)
Index("idx_pdf_annotations_assigned", pdf_annotations.c.assigned_to)

_ANNOTATION_PATCHABLE = {"status", "color", "status_updated_at", "status_updated_by", "assigned_to"}


def _is_serialization_failure(e: OperationalError) -> bool:
    return getattr(e.orig, "pgcode", None) == "40001"


# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/vault.db", **engine_kwargs: Any) -> "SqliteAdapter":
        eng = make_engine(db_url, **engine_kwargs)
        metadata.create_all(eng)
        return cls(engine=eng)

    # ---- transactions ----

    @contextmanager
    def _read(self) -> Iterator[Connection]:
        with self.engine.connect() as conn:
            yield conn

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        """
        Write transaction. On SQLite `BEGIN IMMEDIATE` takes the write lock
        up front, so checks and the write see the same data; other backends
        run it SERIALIZABLE.

        A serialization failure (SQLSTATE 40001) becomes a retryable
        WriteConflict.
        """
        with self.engine.connect() as conn:
            if self.engine.dialect.name == "sqlite":
                conn.execution_options(sqlite_begin="IMMEDIATE")
            else:
                conn.execution_options(isolation_level="SERIALIZABLE")
            try:
                with conn.begin():
                    yield conn
            except OperationalError as e:
                if _is_serialization_failure(e):
                    raise WriteConflict() from e
                raise

    @staticmethod
    def _one(conn: Connection, stmt) -> Optional[Dict[str, Any]]:
        row = conn.execute(stmt).mappings().first()
        return dict(row) if row else None

    @staticmethod
    def _all(conn: Connection, stmt) -> List[Dict[str, Any]]:
        return [dict(r) for r in conn.execute(stmt).mappings().all()]

    def ping(self) -> bool:
        with self._read() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True

    # ---- Projects & memberships ----

    def create_project(self, name: str, owner_id: int, description: Optional[str] = None) -> Dict[str, Any]:
        now = _utcnow()
        with self._write() as conn:
            res = conn.execute(
                insert(projects).values(
                    name=name,
                    description=description,
                    owner_id=owner_id,
                    created_at=now,
                )
            )
            project_id = res.inserted_primary_key[0]
            conn.execute(
                insert(project_memberships).values(
                    user_id=owner_id,
                    project_id=project_id,
                    role="project_leader",
                    created_at=now,
                )
            )
            return self._one(conn, select(projects).where(projects.c.id == project_id))

    def get_project(self, project_id: int) -> Optional[Dict[str, Any]]:
        with self._read() as conn:
            return self._one(conn, select(projects).where(projects.c.id == project_id))

    def list_projects(self) -> List[Dict[str, Any]]:
        with self._read() as conn:
            return self._all(conn, select(projects).order_by(projects.c.created_at.desc(), projects.c.id.desc()))

    def list_projects_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        q = (
            select(projects, project_memberships.c.role)
            .select_from(projects.join(project_memberships, project_memberships.c.project_id == projects.c.id))
            .where(project_memberships.c.user_id == user_id)
            .order_by(projects.c.created_at.desc(), projects.c.id.desc())
        )
        with self._read() as conn:
            return self._all(conn, q)

    def get_membership(self, user_id: int, project_id: int) -> Optional[Dict[str, Any]]:
        q = select(project_memberships).where(
            and_(
                project_memberships.c.user_id == user_id,
                project_memberships.c.project_id == project_id,
            )
        )
        with self._read() as conn:
            return self._one(conn, q)

    def upsert_membership(self, user_id: int, project_id: int, role: str) -> Dict[str, Any]:
        where = and_(
            project_memberships.c.user_id == user_id,
            project_memberships.c.project_id == project_id,
        )
        with self._write() as conn:
            if not self._one(conn, select(projects.c.id).where(projects.c.id == project_id)):
                raise ProjectNotFound(project_id=project_id)
            existing = self._one(conn, select(project_memberships.c.id).where(where))
            if existing:
                conn.execute(update(project_memberships).where(where).values(role=role))
            else:
                conn.execute(
                    insert(project_memberships).values(
                        user_id=user_id,
                        project_id=project_id,
                        role=role,
                        created_at=_utcnow(),
                    )
                )
            return self._one(conn, select(project_memberships).where(where))

    def list_memberships(self, project_id: int) -> List[Dict[str, Any]]:
        q = (
            select(project_memberships)
            .where(project_memberships.c.project_id == project_id)
            .order_by(project_memberships.c.id)
        )
        with self._read() as conn:
            return self._all(conn, q)

    # ---- Folders ----

    def insert_folder(
        self,
        project_id: int,
        name: str,
        parent_id: Optional[int],
        created_by: Optional[int],
    ) -> Dict[str, Any]:
        with self._write() as conn:
            if not self._one(conn, select(projects.c.id).where(projects.c.id == project_id)):
                raise ProjectNotFound(project_id=project_id)
            if parent_id is not None:
                parent = self._one(conn, select(folders.c.project_id).where(folders.c.id == parent_id))
                if not parent or parent["project_id"] != project_id:
                    raise InvalidParent(
                        f"Folder {parent_id} is not a folder of project {project_id}",
                        parent_id=parent_id,
                    )
            res = conn.execute(
                insert(folders).values(
                    name=name,
                    parent_id=parent_id,
                    project_id=project_id,
                    created_by=created_by,
                    created_at=_utcnow(),
                )
            )
            return self._one(conn, select(folders).where(folders.c.id == res.inserted_primary_key[0]))

    def get_folder(self, folder_id: int) -> Optional[Dict[str, Any]]:
        with self._read() as conn:
            return self._one(conn, select(folders).where(folders.c.id == folder_id))

    def list_folders(self, project_id: int) -> List[Dict[str, Any]]:
        q = select(folders).where(folders.c.project_id == project_id).order_by(folders.c.id)
        with self._read() as conn:
            return self._all(conn, q)

    def list_child_folders(self, project_id: int, parent_id: Optional[int]) -> List[Dict[str, Any]]:
        if parent_id is None:
            cond = folders.c.parent_id.is_(None)
        else:
            cond = folders.c.parent_id == parent_id
        q = (
            select(folders)
            .where(and_(folders.c.project_id == project_id, cond))
            .order_by(folders.c.name, folders.c.id)
        )
        with self._read() as conn:
            return self._all(conn, q)

    @staticmethod
    def _parents(conn: Connection, project_id: int) -> Dict[int, Optional[int]]:
        rows = conn.execute(
            select(folders.c.id, folders.c.parent_id).where(folders.c.project_id == project_id)
        ).all()
        return {r.id: r.parent_id for r in rows}

    def folder_parents(self, project_id: int) -> Dict[int, Optional[int]]:
        with self._read() as conn:
            return self._parents(conn, project_id)

    def reparent_folder(self, folder_id: int, new_parent_id: Optional[int]) -> Dict[str, Any]:
        with self._write() as conn:
            folder = self._one(conn, select(folders).where(folders.c.id == folder_id))
            if not folder:
                raise FolderNotFound(folder_id=folder_id)
            project_id = folder["project_id"]

            parents = self._parents(conn, project_id)
            if new_parent_id is not None and new_parent_id not in parents:
                raise InvalidParent(
                    f"Folder {new_parent_id} is not a folder of project {project_id}",
                    parent_id=new_parent_id,
                )
            # Re-checked here, under the write lock, not only by the caller.
            check_reparent(parents, folder_id, new_parent_id)

            conn.execute(update(folders).where(folders.c.id == folder_id).values(parent_id=new_parent_id))
            return self._one(conn, select(folders).where(folders.c.id == folder_id))

    def relink_folders(self, project_id: int, ordered_names: Sequence[str]) -> List[Dict[str, Any]]:
        with self._write() as conn:
            rows = self._all(
                conn,
                select(folders.c.id, folders.c.name, folders.c.parent_id)
                .where(folders.c.project_id == project_id)
                .order_by(folders.c.id),
            )
            by_name: Dict[str, List[int]] = {}
            for r in rows:
                by_name.setdefault(r["name"], []).append(r["id"])

            missing = [n for n in ordered_names if n not in by_name]
            if missing:
                raise MissingFolders(missing)

            for name in ordered_names:
                if len(by_name[name]) > 1:
                    logger.warning(
                        f"relink_folders: project {project_id} has {len(by_name[name])} folders "
                        f"named {name!r}; using the oldest (id={by_name[name][0]})"
                    )

            chain_ids = [by_name[n][0] for n in ordered_names]
            plan = plan_linear_chain(chain_ids)

            parents = {r["id"]: r["parent_id"] for r in rows}
            parents.update(plan)
            problems = hierarchy_violations(parents)
            if problems:
                raise CorruptHierarchy(
                    f"Relinking project {project_id} would leave a broken hierarchy",
                    project_id=project_id,
                    problems=problems,
                )

            for fid, pid in plan.items():
                conn.execute(update(folders).where(folders.c.id == fid).values(parent_id=pid))

            updated = self._all(conn, select(folders).where(folders.c.id.in_(chain_ids)))
            order = {fid: i for i, fid in enumerate(chain_ids)}
            return sorted(updated, key=lambda r: order[r["id"]])

    # ---- Files ----

    def insert_file(
        self,
        project_id: int,
        folder_id: int,
        name: str,
        uploaded_by: int,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        with self._write() as conn:
            folder = self._one(conn, select(folders.c.project_id).where(folders.c.id == folder_id))
            if not folder or folder["project_id"] != project_id:
                raise MissingFolder(
                    f"Folder {folder_id} does not exist in project {project_id}",
                    folder_id=folder_id,
                )
            res = conn.execute(
                insert(files).values(
                    name=name,
                    folder_id=folder_id,
                    project_id=project_id,
                    file_type=file_type,
                    file_size=file_size,
                    uploaded_by=uploaded_by,
                    created_at=_utcnow(),
                )
            )
            return self._one(conn, select(files).where(files.c.id == res.inserted_primary_key[0]))

    def get_file(self, file_id: int) -> Optional[Dict[str, Any]]:
        with self._read() as conn:
            return self._one(conn, select(files).where(files.c.id == file_id))

    def list_files(self, project_id: int, folder_id: int) -> List[Dict[str, Any]]:
        q = (
            select(files)
            .where(and_(files.c.project_id == project_id, files.c.folder_id == folder_id))
            .order_by(files.c.created_at.desc(), files.c.id.desc())
        )
        with self._read() as conn:
            return self._all(conn, q)

    def discard_file(self, file_id: int) -> bool:
        with self._write() as conn:
            has_versions = conn.execute(
                select(pdf_versions.c.id).where(pdf_versions.c.file_id == file_id).limit(1)
            ).first()
            if has_versions:
                return False
            res = conn.execute(delete(files).where(files.c.id == file_id))
            return res.rowcount > 0

    def misplaced_files(self, project_id: int) -> List[Dict[str, Any]]:
        q = (
            select(files, folders.c.project_id.label("folder_project_id"))
            .select_from(files.outerjoin(folders, folders.c.id == files.c.folder_id))
            .where(files.c.project_id == project_id)
            .where(
                (folders.c.id.is_(None)) | (folders.c.project_id != files.c.project_id)
            )
            .order_by(files.c.id)
        )
        with self._read() as conn:
            return self._all(conn, q)

    # ---- Versions ----

    @staticmethod
    def _next_version_number(conn: Connection, file_id: int) -> int:
        current = conn.execute(
            select(func.max(pdf_versions.c.version_number)).where(pdf_versions.c.file_id == file_id)
        ).scalar()
        return (current or 0) + 1

    def insert_version(
        self,
        file_id: int,
        content_ref: str,
        description: Optional[str],
        uploaded_by: int,
        content_meta: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            with self._write() as conn:
                if not self._one(conn, select(files.c.id).where(files.c.id == file_id)):
                    raise FileNotFound(file_id=file_id)
                number = self._next_version_number(conn, file_id)
                res = conn.execute(
                    insert(pdf_versions).values(
                        file_id=file_id,
                        version_number=number,
                        content_ref=content_ref,
                        description=description,
                        content_meta=content_meta or {},
                        uploaded_at=_utcnow(),
                        uploaded_by=uploaded_by,
                    )
                )
                return self._one(
                    conn, select(pdf_versions).where(pdf_versions.c.id == res.inserted_primary_key[0])
                )
        except (IntegrityError, WriteConflict) as e:
            raise VersionConflict(file_id=file_id) from e

    def _versions_query(self):
        counts = (
            select(
                pdf_annotations.c.pdf_version_id,
                func.count(pdf_annotations.c.id).label("annotation_count"),
            )
            .group_by(pdf_annotations.c.pdf_version_id)
            .subquery()
        )
        return (
            select(
                pdf_versions,
                files.c.project_id,
                func.coalesce(counts.c.annotation_count, 0).label("annotation_count"),
            )
            .select_from(
                pdf_versions.join(files, files.c.id == pdf_versions.c.file_id).outerjoin(
                    counts, counts.c.pdf_version_id == pdf_versions.c.id
                )
            )
        )

    def get_version(self, version_id: int) -> Optional[Dict[str, Any]]:
        with self._read() as conn:
            return self._one(conn, self._versions_query().where(pdf_versions.c.id == version_id))

    def list_versions(self, file_id: int) -> List[Dict[str, Any]]:
        q = (
            self._versions_query()
            .where(pdf_versions.c.file_id == file_id)
            .order_by(pdf_versions.c.version_number.asc())
        )
        with self._read() as conn:
            return self._all(conn, q)

    def version_numbers(self, project_id: int) -> Dict[int, List[int]]:
        q = (
            select(files.c.id, pdf_versions.c.version_number)
            .select_from(files.outerjoin(pdf_versions, pdf_versions.c.file_id == files.c.id))
            .where(files.c.project_id == project_id)
            .order_by(files.c.id, pdf_versions.c.version_number)
        )
        out: Dict[int, List[int]] = {}
        with self._read() as conn:
            for file_id, number in conn.execute(q).all():
                numbers = out.setdefault(file_id, [])
                if number is not None:
                    numbers.append(number)
        return out

    # ---- Annotations ----

    def _annotations_query(self):
        return (
            select(
                pdf_annotations,
                pdf_versions.c.file_id,
                pdf_versions.c.version_number,
                files.c.project_id,
            )
            .select_from(
                pdf_annotations.join(pdf_versions, pdf_versions.c.id == pdf_annotations.c.pdf_version_id).join(
                    files, files.c.id == pdf_versions.c.file_id
                )
            )
        )

    def insert_annotation(
        self,
        pdf_version_id: int,
        rect: Dict[str, Any],
        color: str,
        comment: Optional[str],
        status: str,
        created_by: int,
    ) -> Dict[str, Any]:
        with self._write() as conn:
            res = conn.execute(
                insert(pdf_annotations).values(
                    pdf_version_id=pdf_version_id,
                    rect_json=rect,
                    color=color,
                    comment=comment,
                    status=status,
                    created_at=_utcnow(),
                    created_by=created_by,
                )
            )
            return self._one(
                conn,
                self._annotations_query().where(pdf_annotations.c.id == res.inserted_primary_key[0]),
            )

    def get_annotation(self, annotation_id: int) -> Optional[Dict[str, Any]]:
        with self._read() as conn:
            return self._one(conn, self._annotations_query().where(pdf_annotations.c.id == annotation_id))

    def list_annotations(self, pdf_version_id: int) -> List[Dict[str, Any]]:
        q = (
            self._annotations_query()
            .where(pdf_annotations.c.pdf_version_id == pdf_version_id)
            .order_by(pdf_annotations.c.created_at, pdf_annotations.c.id)
        )
        with self._read() as conn:
            return self._all(conn, q)

    def update_annotation(self, annotation_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        allowed = {k: v for k, v in values.items() if k in _ANNOTATION_PATCHABLE}
        if not allowed:
            raise ValueError("No patchable annotation fields")
        with self._write() as conn:
            res = conn.execute(
                update(pdf_annotations).where(pdf_annotations.c.id == annotation_id).values(**allowed)
            )
            if res.rowcount == 0:
                raise KeyError(annotation_id)
            return self._one(conn, self._annotations_query().where(pdf_annotations.c.id == annotation_id))

    def list_assigned_annotations(
        self,
        user_id: int,
        project_ids: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        q = self._annotations_query().where(pdf_annotations.c.assigned_to == user_id)
        if project_ids is not None:
            if not project_ids:
                return []
            q = q.where(files.c.project_id.in_(list(project_ids)))
        q = q.order_by(pdf_annotations.c.created_at.desc(), pdf_annotations.c.id.desc())
        with self._read() as conn:
            return self._all(conn, q)

"""
Shared fixtures for the vault tests.

Every test gets a fresh in-memory SQLite database; the HTTP tests swap it
into the app in place of the configured adapter.
"""
import io
import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# === Configure env BEFORE main/settings are imported ===
os.environ["STORAGE_BACKEND"] = "sqlite"
os.environ["DB_URL"] = "sqlite://"
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="vault-uploads-"))

import pypdfium2 as pdfium
from sqlalchemy.exc import OperationalError

from adapters.sqlite import SqliteAdapter
from core.content_store import LocalContentStore
from core.projects import ProjectService
from models import User

LEADER = User(id=1, role="user")
MEMBER = User(id=2, role="user")
OUTSIDER = User(id=3, role="user")
ADMIN = User(id=90, role="admin")
SUPERUSER = User(id=91, role="superuser")


def make_pdf(pages: int = 2) -> bytes:
    doc = pdfium.PdfDocument.new()
    for _ in range(pages):
        doc.new_page(612, 792)
    buf = io.BytesIO()
    doc.save(buf)
    doc.close()
    return buf.getvalue()


def auth(user: User) -> dict:
    return {"X-User-Id": str(user.id), "X-User-Role": user.role}


class _SerializationFailure(Exception):
    pgcode = "40001"


def serialization_failure(*args, **kwargs):
    """Stand-in for a write that PostgreSQL aborts under SERIALIZABLE."""
    raise OperationalError("UPDATE folders ...", {}, _SerializationFailure("could not serialize access"))


@pytest.fixture
def adapter():
    a = SqliteAdapter.from_url("sqlite://")
    yield a
    a.engine.dispose()


@pytest.fixture
def file_adapter(tmp_path):
    """File-backed database, for tests that use several connections at once."""
    a = SqliteAdapter.from_url(f"sqlite:///{tmp_path / 'vault.db'}")
    yield a
    a.engine.dispose()


@pytest.fixture
def content_store(tmp_path):
    return LocalContentStore(str(tmp_path / "uploads"))


@pytest.fixture
def pdf_bytes():
    return make_pdf(3)


def _make_project(adapter):
    projects = ProjectService(adapter)
    project = projects.create_project(LEADER, "Bridge retrofit")
    projects.add_member(LEADER, project.id, MEMBER.id, "user")
    return project


@pytest.fixture
def project(adapter):
    """Project led by LEADER, with MEMBER as a plain member."""
    return _make_project(adapter)


@pytest.fixture
def file_project(file_adapter):
    return _make_project(file_adapter)


@pytest.fixture
def client(adapter, content_store, monkeypatch):
    from fastapi.testclient import TestClient
    import main

    monkeypatch.setattr(main, "storage_adapter", adapter)
    monkeypatch.setattr(main, "content_store", content_store)
    return TestClient(main.app)

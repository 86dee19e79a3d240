"""
Seed script for local testing of the document vault.
Creates a sample project with a small folder tree, a PDF file with one
version, and a couple of annotations.

Usage:
    python -m core.seed_local
"""
import io
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pypdfium2 as pdfium

from settings import get_settings
from adapters.sqlite import SqliteAdapter
from core.annotations import AnnotationLedger
from core.content_store import LocalContentStore
from core.files import FileRegistry
from core.folders import FolderStore
from core.projects import ProjectService
from core.versions import VersionChain
from models import Rect, User

SEED_USER = User(id=1, role="user")
REVIEWER = User(id=2, role="user")


def sample_pdf(pages: int = 2) -> bytes:
    """Blank US-letter pages, enough to annotate."""
    doc = pdfium.PdfDocument.new()
    for _ in range(pages):
        doc.new_page(612, 792)
    buf = io.BytesIO()
    doc.save(buf)
    doc.close()
    return buf.getvalue()


def seed(adapter=None, uploads_dir=None):
    """Create sample data for testing. Returns the ids that were created."""
    settings = get_settings()
    print(f"Seeding document vault ({settings.storage_backend} backend)...")

    if adapter is None:
        if settings.storage_backend != "sqlite":
            print(f"Seeding not implemented for {settings.storage_backend}")
            return None
        adapter = SqliteAdapter.from_url(settings.db_url)
    store = LocalContentStore(uploads_dir or settings.uploads_dir)

    project = ProjectService(adapter).create_project(SEED_USER, "Sample project", "Seeded for local testing")
    ProjectService(adapter).add_member(SEED_USER, project.id, REVIEWER.id, "user")
    print(f"Project created: {project.id}")

    folders = FolderStore(adapter)
    drawings = folders.create_folder(SEED_USER, project.id, "Drawings")
    rev_a = folders.create_folder(SEED_USER, project.id, "Rev A", drawings.id)
    folders.create_folder(SEED_USER, project.id, "Specs")
    print(f"Folders created: Drawings={drawings.id}, Rev A={rev_a.id}")

    versions = VersionChain(adapter, content_store=store, conflict_retries=settings.version_conflict_retries)
    vault_file, version = FileRegistry(adapter).upload(
        SEED_USER,
        project.id,
        rev_a.id,
        filename="general-arrangement.pdf",
        content_type="application/pdf",
        data=sample_pdf(),
        versions=versions,
        description="Initial issue",
    )
    print(f"File {vault_file.id} uploaded as version {version.version_number}")

    ledger = AnnotationLedger(adapter)
    first = ledger.add_annotation(
        REVIEWER, project.id, version.id,
        Rect(x=72, y=90, width=200, height=40, page_number=1),
        comment="Title block is missing the revision letter",
    )
    ledger.add_annotation(
        REVIEWER, project.id, version.id,
        Rect(x=300, y=400, width=120, height=80, page_number=2),
        comment="Check this dimension against the datasheet",
    )
    ledger.set_status(SEED_USER, project.id, first.id, "action_required")
    ledger.assign(SEED_USER, project.id, first.id, SEED_USER.id)
    print("Annotations created")

    print("\nSeed complete")
    print(f"  GET /files?projectId={project.id}&folderId={rev_a.id}   (X-User-Id: {SEED_USER.id})")
    return {
        "project_id": project.id,
        "folder_ids": [drawings.id, rev_a.id],
        "file_id": vault_file.id,
        "version_id": version.id,
    }


if __name__ == "__main__":
    seed()

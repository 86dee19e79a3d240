"""
Tests for the file registry.
"""
import pytest

from adapters.sqlite import SqliteAdapter
from conftest import ADMIN, LEADER, MEMBER, OUTSIDER, make_pdf
from core.errors import (
    AccessDenied,
    FileNotFound,
    FolderNotFound,
    InvalidContent,
    InvalidIdFormat,
    MissingFolder,
    MissingFolderId,
    MissingProjectId,
    UnsupportedFileType,
    UploadTooLarge,
    VersionConflict,
)
from core.files import FileRegistry
from core.folders import FolderStore
from core.projects import ProjectService
from core.versions import VersionChain


@pytest.fixture
def folders(adapter, project):
    store = FolderStore(adapter)
    parent = store.create_folder(LEADER, project.id, "Drawings")
    child = store.create_folder(LEADER, project.id, "Rev A", parent.id)
    return parent, child


class TestCreateFile:
    """A file always lands in a verified folder of its project."""

    def test_create(self, adapter, project, folders):
        parent, _ = folders
        f = FileRegistry(adapter).create_file(MEMBER, project.id, parent.id, "plan.pdf", "application/pdf", 10)
        assert f.folder_id == parent.id
        assert f.project_id == project.id
        assert f.uploaded_by == MEMBER.id

    @pytest.mark.parametrize("folder_id", [None, "", "undefined"])
    def test_without_folder(self, adapter, project, folder_id):
        with pytest.raises(MissingFolder):
            FileRegistry(adapter).create_file(MEMBER, project.id, folder_id, "x.pdf")

    def test_unknown_folder(self, adapter, project):
        with pytest.raises(MissingFolder):
            FileRegistry(adapter).create_file(MEMBER, project.id, 777, "x.pdf")

    def test_folder_of_other_project(self, adapter, project):
        other = ProjectService(adapter).create_project(MEMBER, "Other")
        foreign = FolderStore(adapter).create_folder(MEMBER, other.id, "F")
        with pytest.raises(MissingFolder):
            FileRegistry(adapter).create_file(MEMBER, project.id, foreign.id, "x.pdf")


class TestListFiles:
    """Validation order and exact-folder listing."""

    def test_missing_folder_id(self, adapter, project):
        """Scenario: projectId=5, folderId=undefined is an error, not []."""
        with pytest.raises(MissingFolderId):
            FileRegistry(adapter).list_files(MEMBER, 5, "undefined")

    def test_missing_project_id_first(self, adapter):
        """projectId is checked before folderId."""
        with pytest.raises(MissingProjectId):
            FileRegistry(adapter).list_files(MEMBER, None, None)

    def test_malformed_ids(self, adapter, project):
        with pytest.raises(InvalidIdFormat):
            FileRegistry(adapter).list_files(MEMBER, "abc", 1)
        with pytest.raises(InvalidIdFormat):
            FileRegistry(adapter).list_files(MEMBER, project.id, "1x")

    def test_outsider_before_existence(self, adapter, project, folders):
        """Non-members get ACCESS_DENIED whether or not the folder exists."""
        parent, _ = folders
        registry = FileRegistry(adapter)
        with pytest.raises(AccessDenied):
            registry.list_files(OUTSIDER, project.id, parent.id)
        with pytest.raises(AccessDenied):
            registry.list_files(OUTSIDER, project.id, 99999)

    def test_unknown_folder_for_member(self, adapter, project):
        with pytest.raises(FolderNotFound):
            FileRegistry(adapter).list_files(MEMBER, project.id, 99999)

    def test_exact_folder_only(self, adapter, project, folders):
        """Files of descendant folders are never included."""
        parent, child = folders
        registry = FileRegistry(adapter)
        registry.create_file(LEADER, project.id, parent.id, "top.pdf")
        registry.create_file(LEADER, project.id, child.id, "nested.pdf")

        assert [f.name for f in registry.list_files(MEMBER, project.id, parent.id)] == ["top.pdf"]
        assert [f.name for f in registry.list_files(MEMBER, project.id, child.id)] == ["nested.pdf"]

    def test_empty_folder(self, adapter, project, folders):
        _, child = folders
        assert FileRegistry(adapter).list_files(MEMBER, project.id, child.id) == []

    def test_newest_first_and_idempotent(self, adapter, project, folders):
        parent, _ = folders
        registry = FileRegistry(adapter)
        for name in ("a.pdf", "b.pdf", "c.pdf"):
            registry.create_file(LEADER, project.id, parent.id, name)

        first = registry.list_files(MEMBER, str(project.id), str(parent.id))
        second = registry.list_files(MEMBER, str(project.id), str(parent.id))
        assert [f.name for f in first] == ["c.pdf", "b.pdf", "a.pdf"]
        assert first == second

    def test_admin_without_membership(self, adapter, project, folders):
        parent, _ = folders
        FileRegistry(adapter).create_file(LEADER, project.id, parent.id, "a.pdf")
        assert len(FileRegistry(adapter).list_files(ADMIN, project.id, parent.id)) == 1


class TestGetFile:
    def test_get(self, adapter, project, folders):
        parent, _ = folders
        registry = FileRegistry(adapter)
        created = registry.create_file(LEADER, project.id, parent.id, "a.pdf")
        assert registry.get_file(MEMBER, project.id, created.id) == created

    def test_scoped_to_project(self, adapter, project, folders):
        """A file id from another project is FILE_NOT_FOUND here."""
        other = ProjectService(adapter).create_project(MEMBER, "Other")
        folder = FolderStore(adapter).create_folder(MEMBER, other.id, "F")
        foreign = FileRegistry(adapter).create_file(MEMBER, other.id, folder.id, "x.pdf")
        with pytest.raises(FileNotFound):
            FileRegistry(adapter).get_file(MEMBER, project.id, foreign.id)


class TestUpload:
    """Uploads: type filter, PDF check, first version."""

    def test_pdf_creates_first_version(self, adapter, project, folders, content_store, pdf_bytes):
        parent, _ = folders
        chain = VersionChain(adapter, content_store=content_store)
        vault_file, version = FileRegistry(adapter).upload(
            MEMBER, project.id, parent.id, "plan.pdf", "application/pdf", pdf_bytes, chain
        )
        assert vault_file.file_type == "application/pdf"
        assert vault_file.file_size == len(pdf_bytes)
        assert version.version_number == 1
        assert version.page_count == 3
        assert content_store.exists(version.content_ref)

    def test_image_has_no_version(self, adapter, project, folders, content_store):
        parent, _ = folders
        chain = VersionChain(adapter, content_store=content_store)
        vault_file, version = FileRegistry(adapter).upload(
            MEMBER, project.id, parent.id, "photo.png", "image/png", b"\x89PNG....", chain
        )
        assert version is None
        assert adapter.list_versions(vault_file.id) == []

    def test_rejected_type(self, adapter, project, folders, content_store):
        parent, _ = folders
        chain = VersionChain(adapter, content_store=content_store)
        with pytest.raises(UnsupportedFileType):
            FileRegistry(adapter).upload(MEMBER, project.id, parent.id, "x.exe", "application/x-msdownload", b"MZ", chain)

    def test_unreadable_pdf_leaves_nothing(self, adapter, project, folders, content_store):
        parent, _ = folders
        chain = VersionChain(adapter, content_store=content_store)
        with pytest.raises(InvalidContent):
            FileRegistry(adapter).upload(MEMBER, project.id, parent.id, "bad.pdf", "application/pdf", b"not a pdf", chain)
        assert adapter.list_files(project.id, parent.id) == []

    def test_too_large(self, adapter, project, folders, content_store):
        parent, _ = folders
        chain = VersionChain(adapter, content_store=content_store)
        with pytest.raises(UploadTooLarge):
            FileRegistry(adapter).upload(
                MEMBER, project.id, parent.id, "big.pdf", "application/pdf", make_pdf(1), chain, max_bytes=10
            )

    def test_failed_version_insert_removes_file(self, adapter, project, folders, content_store, pdf_bytes, monkeypatch):
        """A PDF upload whose first version cannot be written leaves no file and no content."""
        parent, _ = folders

        def conflict(self, file_id, *args, **kwargs):
            raise VersionConflict(file_id=file_id)

        monkeypatch.setattr(SqliteAdapter, "insert_version", conflict)
        chain = VersionChain(adapter, content_store=content_store, conflict_retries=1)
        with pytest.raises(VersionConflict):
            FileRegistry(adapter).upload(MEMBER, project.id, parent.id, "a.pdf", "application/pdf", pdf_bytes, chain)

        assert adapter.list_files(project.id, parent.id) == []
        assert [p.name for p in content_store.root.iterdir()] == []

    def test_failed_content_write_removes_file(self, adapter, project, folders, content_store, pdf_bytes, monkeypatch):
        parent, _ = folders

        def disk_full(data, filename):
            raise OSError("No space left on device")

        monkeypatch.setattr(content_store, "save", disk_full)
        chain = VersionChain(adapter, content_store=content_store)
        with pytest.raises(OSError):
            FileRegistry(adapter).upload(MEMBER, project.id, parent.id, "a.pdf", "application/pdf", pdf_bytes, chain)
        assert adapter.list_files(project.id, parent.id) == []

    def test_discard_keeps_files_with_versions(self, adapter, project, folders):
        parent, _ = folders
        f = FileRegistry(adapter).create_file(LEADER, project.id, parent.id, "kept.pdf")
        VersionChain(adapter).add_version(LEADER, project.id, f.id, "ref")
        assert adapter.discard_file(f.id) is False
        assert adapter.get_file(f.id) is not None

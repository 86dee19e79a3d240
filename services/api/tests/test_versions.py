"""
Tests for the version chain, including concurrent uploads.
"""
import threading

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from adapters.sqlite import SqliteAdapter, pdf_versions
from conftest import LEADER, MEMBER, OUTSIDER, serialization_failure
from core.errors import AccessDenied, FileNotFound, InvalidContent, VersionConflict, VersionNotFound
from core.files import FileRegistry
from core.folders import FolderStore
from core.projects import ProjectService
from core.versions import VersionChain


def _file(adapter, project):
    folder = FolderStore(adapter).create_folder(LEADER, project.id, "Docs")
    return FileRegistry(adapter).create_file(LEADER, project.id, folder.id, "plan.pdf")


@pytest.fixture
def vault_file(adapter, project):
    return _file(adapter, project)


class TestAddVersion:
    """Numbering starts at 1 and never skips."""

    def test_sequential_numbers(self, adapter, project, vault_file):
        chain = VersionChain(adapter)
        numbers = [
            chain.add_version(MEMBER, project.id, vault_file.id, f"ref-{i}").version_number
            for i in range(3)
        ]
        assert numbers == [1, 2, 3]

    def test_numbers_are_per_file(self, adapter, project, vault_file):
        chain = VersionChain(adapter)
        other = FileRegistry(adapter).create_file(LEADER, project.id, vault_file.folder_id, "other.pdf")
        chain.add_version(MEMBER, project.id, vault_file.id, "a")
        chain.add_version(MEMBER, project.id, vault_file.id, "b")
        assert chain.add_version(MEMBER, project.id, other.id, "c").version_number == 1

    def test_unknown_file(self, adapter, project):
        with pytest.raises(FileNotFound):
            VersionChain(adapter).add_version(MEMBER, project.id, 404, "ref")

    def test_outsider(self, adapter, project, vault_file):
        with pytest.raises(AccessDenied):
            VersionChain(adapter).add_version(OUTSIDER, project.id, vault_file.id, "ref")

    def test_no_update_operation(self):
        """Versions are immutable: nothing exposes an update."""
        assert not any(name.startswith("update") for name in dir(VersionChain))


class TestUploadVersion:
    def test_upload_records_metadata(self, adapter, project, vault_file, content_store, pdf_bytes):
        chain = VersionChain(adapter, content_store=content_store)
        version = chain.upload_version(MEMBER, project.id, vault_file.id, pdf_bytes, "plan.pdf", "first issue")
        assert version.version_number == 1
        assert version.description == "first issue"
        assert version.metadata["page_count"] == 3
        assert version.metadata["size_bytes"] == len(pdf_bytes)

        version, path = chain.content_path(MEMBER, project.id, version.id)
        assert path.read_bytes() == pdf_bytes

    def test_unreadable_pdf(self, adapter, project, vault_file, content_store):
        chain = VersionChain(adapter, content_store=content_store)
        with pytest.raises(InvalidContent):
            chain.upload_version(MEMBER, project.id, vault_file.id, b"%PDF-garbage", "x.pdf")
        assert chain.list_versions(MEMBER, project.id, vault_file.id) == []


class TestReads:
    def test_list_ascending_with_counts(self, adapter, project, vault_file):
        chain = VersionChain(adapter)
        v1 = chain.add_version(MEMBER, project.id, vault_file.id, "a", content_meta={"page_count": 2})
        chain.add_version(MEMBER, project.id, vault_file.id, "b")
        adapter.insert_annotation(v1.id, {"x": 1, "y": 1, "width": 1, "height": 1, "pageNumber": 1},
                                  "#FF69B4", None, "new_comment", MEMBER.id)

        versions = chain.list_versions(MEMBER, project.id, vault_file.id)
        assert [v.version_number for v in versions] == [1, 2]
        assert [v.annotation_count for v in versions] == [1, 0]
        assert versions[0].page_count == 2

    def test_get_version_scoped(self, adapter, project, vault_file):
        chain = VersionChain(adapter)
        v = chain.add_version(MEMBER, project.id, vault_file.id, "a")
        assert chain.get_version(MEMBER, project.id, v.id).id == v.id

        other = ProjectService(adapter).create_project(MEMBER, "Other")
        with pytest.raises(VersionNotFound):
            chain.get_version(MEMBER, other.id, v.id)

    def test_missing_content(self, adapter, project, vault_file, content_store):
        chain = VersionChain(adapter, content_store=content_store)
        v = chain.add_version(MEMBER, project.id, vault_file.id, "never-stored.pdf")
        with pytest.raises(VersionNotFound):
            chain.content_path(MEMBER, project.id, v.id)


class TestVersionConflict:
    """
    A file with versions 1 and 2 receives two uploads at once: one gets 3,
    the other either fails with VERSION_CONFLICT or is retried into 4.
    """

    @pytest.fixture
    def stale_once(self, monkeypatch):
        """
        Arm the adapter so that its next number computation returns a number
        that is already taken, once. Returns the call counter.
        """
        original = SqliteAdapter._next_version_number
        calls = {"n": 0}

        def stale(conn, file_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return original(conn, file_id) - 1
            return original(conn, file_id)

        def arm():
            monkeypatch.setattr(SqliteAdapter, "_next_version_number", staticmethod(stale))
            return calls

        return arm

    def _two_versions_plus_winner(self, adapter, project, vault_file):
        chain = VersionChain(adapter)
        chain.add_version(MEMBER, project.id, vault_file.id, "v1")
        chain.add_version(MEMBER, project.id, vault_file.id, "v2")
        # The concurrent upload that won number 3
        chain.add_version(LEADER, project.id, vault_file.id, "winner")

    def test_conflict_without_retry(self, adapter, project, vault_file, stale_once):
        self._two_versions_plus_winner(adapter, project, vault_file)
        stale_once()
        chain = VersionChain(adapter, conflict_retries=1)
        with pytest.raises(VersionConflict) as exc:
            chain.add_version(MEMBER, project.id, vault_file.id, "loser")
        assert exc.value.retryable
        assert exc.value.to_dict()["retryable"] is True
        assert [v["version_number"] for v in adapter.list_versions(vault_file.id)] == [1, 2, 3]

    def test_conflict_retried(self, adapter, project, vault_file, stale_once):
        self._two_versions_plus_winner(adapter, project, vault_file)
        calls = stale_once()
        chain = VersionChain(adapter, conflict_retries=3)
        version = chain.add_version(MEMBER, project.id, vault_file.id, "loser")
        assert version.version_number == 4
        assert calls["n"] == 2
        assert [v["version_number"] for v in adapter.list_versions(vault_file.id)] == [1, 2, 3, 4]

    def test_duplicate_number_rejected_by_schema(self, adapter, project, vault_file):
        VersionChain(adapter).add_version(MEMBER, project.id, vault_file.id, "v1")
        with pytest.raises(IntegrityError):
            with adapter.engine.begin() as conn:
                conn.execute(insert(pdf_versions).values(
                    file_id=vault_file.id, version_number=1, content_ref="dup", uploaded_by=MEMBER.id,
                ))

    def test_serialization_failure_is_a_version_conflict(self, adapter, project, vault_file, monkeypatch):
        monkeypatch.setattr(SqliteAdapter, "_next_version_number", staticmethod(serialization_failure))
        with pytest.raises(VersionConflict):
            VersionChain(adapter, conflict_retries=2).add_version(MEMBER, project.id, vault_file.id, "v1")
        assert adapter.list_versions(vault_file.id) == []

    def test_threads(self, file_adapter, file_project):
        """Two real concurrent uploads end up as 3 and 4."""
        vault_file = _file(file_adapter, file_project)
        chain = VersionChain(file_adapter)
        chain.add_version(MEMBER, file_project.id, vault_file.id, "v1")
        chain.add_version(MEMBER, file_project.id, vault_file.id, "v2")

        barrier = threading.Barrier(2)
        results, errors = [], []

        def upload(ref):
            barrier.wait()
            try:
                results.append(chain.add_version(MEMBER, file_project.id, vault_file.id, ref).version_number)
            except VersionConflict as e:
                errors.append(e)

        threads = [threading.Thread(target=upload, args=(f"c{i}",)) for i in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == [3, 4]
        assert errors == []
        numbers = [v["version_number"] for v in file_adapter.list_versions(vault_file.id)]
        assert numbers == [1, 2, 3, 4]

"""
Smoke test for the local seed script.
"""
from conftest import MEMBER
from core.annotations import AnnotationLedger
from core.files import FileRegistry
from core.seed_local import SEED_USER, seed


def test_seed_creates_sample_project(adapter, tmp_path):
    ids = seed(adapter, uploads_dir=str(tmp_path))

    files = FileRegistry(adapter).list_files(SEED_USER, ids["project_id"], ids["folder_ids"][1])
    assert [f.id for f in files] == [ids["file_id"]]

    versions = adapter.list_versions(ids["file_id"])
    assert [v["version_number"] for v in versions] == [1]
    assert versions[0]["annotation_count"] == 2

    assigned = AnnotationLedger(adapter).list_assigned(SEED_USER)
    assert [a.status for a in assigned] == ["action_required"]
    assert AnnotationLedger(adapter).list_assigned(MEMBER) == []

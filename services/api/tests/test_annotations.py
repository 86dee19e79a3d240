"""
Tests for the annotation ledger.
"""
import pytest

from conftest import ADMIN, LEADER, MEMBER, OUTSIDER
from core.annotations import AnnotationLedger
from core.errors import (
    AccessDenied,
    AnnotationNotFound,
    InvalidRect,
    UnknownStatus,
    VersionNotFound,
)
from core.files import FileRegistry
from core.folders import FolderStore
from core.projects import ProjectService
from core.versions import VersionChain
from models import STATUS_COLORS, Rect


@pytest.fixture
def version(adapter, project):
    folder = FolderStore(adapter).create_folder(LEADER, project.id, "Docs")
    f = FileRegistry(adapter).create_file(LEADER, project.id, folder.id, "plan.pdf")
    return VersionChain(adapter).add_version(LEADER, project.id, f.id, "ref", content_meta={"page_count": 2})


@pytest.fixture
def ledger(adapter):
    return AnnotationLedger(adapter)


RECT = Rect(x=10, y=20, width=100, height=50, page_number=1)


class TestAddAnnotation:
    def test_defaults(self, ledger, project, version):
        """New annotations start as new_comment with its color."""
        a = ledger.add_annotation(MEMBER, project.id, version.id, RECT, comment="Check this")
        assert a.status == "new_comment"
        assert a.color == STATUS_COLORS["new_comment"]
        assert a.rect == RECT
        assert a.comment == "Check this"
        assert a.created_by == MEMBER.id

    def test_custom_color_and_dict_rect(self, ledger, project, version):
        a = ledger.add_annotation(
            MEMBER, project.id, version.id,
            {"x": 0, "y": 0, "width": 5, "height": 5, "pageNumber": 2},
            color="#123456",
        )
        assert a.color == "#123456"
        assert a.rect.page_number == 2

    def test_zero_width(self, ledger, project, version):
        """Scenario: width 0 is INVALID_RECT."""
        with pytest.raises(InvalidRect):
            ledger.add_annotation(MEMBER, project.id, version.id, {"x": 0, "y": 0, "width": 0, "height": 10, "pageNumber": 1})

    def test_non_finite_geometry(self, adapter, ledger, project, version):
        """NaN or infinite sizes are INVALID_RECT and nothing is stored."""
        with pytest.raises(InvalidRect):
            ledger.add_annotation(LEADER, project.id, version.id, Rect(0, 0, float("nan"), 10, 1))
        with pytest.raises(InvalidRect):
            ledger.add_annotation(
                LEADER, project.id, version.id,
                {"x": 0, "y": 0, "width": 5, "height": float("inf"), "pageNumber": 1},
            )
        assert adapter.list_annotations(version.id) == []

    def test_page_beyond_document(self, ledger, project, version):
        with pytest.raises(InvalidRect):
            ledger.add_annotation(MEMBER, project.id, version.id, Rect(0, 0, 5, 5, 3))

    def test_rect_checked_before_access(self, ledger, project, version):
        """Geometry is boundary validation and needs no store access."""
        with pytest.raises(InvalidRect):
            ledger.add_annotation(OUTSIDER, project.id, version.id, Rect(0, 0, -1, 5, 1))

    def test_outsider(self, ledger, project, version):
        with pytest.raises(AccessDenied):
            ledger.add_annotation(OUTSIDER, project.id, version.id, RECT)

    def test_version_of_other_project(self, adapter, ledger, project, version):
        other = ProjectService(adapter).create_project(MEMBER, "Other")
        with pytest.raises(VersionNotFound):
            ledger.add_annotation(MEMBER, other.id, version.id, RECT)


class TestSetStatus:
    """Any status can move to any other; nothing else is accepted."""

    @pytest.fixture
    def annotation(self, ledger, project, version):
        return ledger.add_annotation(MEMBER, project.id, version.id, RECT)

    def test_any_to_any(self, ledger, project, annotation):
        sequence = ["resolved", "new_comment", "rejected", "other_forum", "action_required", "new_review", "resolved"]
        for status in sequence:
            updated = ledger.set_status(LEADER, project.id, annotation.id, status)
            assert updated.status == status
            assert updated.color == STATUS_COLORS[status]
            assert updated.status_updated_by == LEADER.id
            assert updated.status_updated_at is not None

    def test_legacy_alias(self, ledger, project, annotation):
        assert ledger.set_status(LEADER, project.id, annotation.id, "reviewing").status == "new_review"

    def test_unknown_status(self, adapter, ledger, project, annotation):
        with pytest.raises(UnknownStatus):
            ledger.set_status(LEADER, project.id, annotation.id, "closed")
        assert adapter.get_annotation(annotation.id)["status"] == "new_comment"

    def test_unknown_annotation(self, ledger, project):
        with pytest.raises(AnnotationNotFound):
            ledger.set_status(LEADER, project.id, 999, "resolved")

    def test_outsider(self, ledger, project, annotation):
        with pytest.raises(AccessDenied):
            ledger.set_status(OUTSIDER, project.id, annotation.id, "resolved")

    def test_rest_untouched(self, ledger, project, annotation):
        """Status changes never touch geometry or the comment."""
        updated = ledger.set_status(LEADER, project.id, annotation.id, "rejected")
        assert updated.rect == annotation.rect
        assert updated.comment == annotation.comment
        assert updated.created_by == annotation.created_by


class TestListAndAssign:
    def test_list_in_creation_order(self, ledger, project, version):
        first = ledger.add_annotation(MEMBER, project.id, version.id, RECT, comment="one")
        second = ledger.add_annotation(LEADER, project.id, version.id, RECT, comment="two")
        assert [a.id for a in ledger.list_annotations(MEMBER, project.id, version.id)] == [first.id, second.id]

    def test_list_unknown_version(self, ledger, project):
        with pytest.raises(VersionNotFound):
            ledger.list_annotations(MEMBER, project.id, 31337)

    def test_assign_and_list_assigned(self, ledger, project, version):
        a = ledger.add_annotation(LEADER, project.id, version.id, RECT)
        ledger.add_annotation(LEADER, project.id, version.id, RECT)

        assert ledger.assign(LEADER, project.id, a.id, MEMBER.id).assigned_to == MEMBER.id
        assert [x.id for x in ledger.list_assigned(MEMBER)] == [a.id]
        assert ledger.list_assigned(LEADER) == []

        assert ledger.assign(LEADER, project.id, a.id, None).assigned_to is None
        assert ledger.list_assigned(MEMBER) == []

    def test_list_assigned_needs_access(self, ledger, project, version):
        """Assignments in projects the user cannot access are not listed."""
        a = ledger.add_annotation(LEADER, project.id, version.id, RECT)
        ledger.assign(LEADER, project.id, a.id, OUTSIDER.id)
        assert ledger.list_assigned(OUTSIDER) == []

    def test_list_assigned_admin(self, ledger, project, version):
        a = ledger.add_annotation(LEADER, project.id, version.id, RECT)
        ledger.assign(LEADER, project.id, a.id, ADMIN.id)
        assert [x.id for x in ledger.list_assigned(ADMIN)] == [a.id]

"""
Tests for core/reports.py — draft, submit and expiry transitions.
"""

import copy
import json
import os
import sys
from datetime import date, datetime

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.errors import (
    AlreadySubmitted,
    MissingCategoryInput,
    ReportNotEditable,
    SubmissionWindowClosed,
)
from core.reports import (
    ReportStatus,
    create_report,
    expire_drafts,
    report_from_dict,
    save_draft,
    submit_report,
)
from core.rubrics import RatingLevel, ScoringModel, TAPSRatingGrade, TermName
from core.school_type import SchoolType
from core.terms import TermWindowManager

SAMPLE_DIR = os.path.join(os.path.dirname(__file__), "..", "sample_data")

IN_SECOND_TERM = datetime(2025, 3, 20, 10, 30)
AFTER_SECOND_TERM = date(2025, 4, 10)


def _load(name):
    with open(os.path.join(SAMPLE_DIR, name)) as f:
        return json.load(f)


class NotCalled:
    def __call__(self, payload):
        raise AssertionError("generator should not be called")


@pytest.fixture
def manager():
    return TermWindowManager.from_dicts(_load("term_windows.json"))


@pytest.fixture
def standard_inputs():
    return _load("standard_full_marks.json")


@pytest.fixture
def draft(manager):
    return create_report("R-1", "SCH-001", "primary", manager, IN_SECOND_TERM)


class TestCreateReport:
    """Drafts open only inside a term window."""

    def test_fixes_term_and_model(self, draft):
        assert draft.status == ReportStatus.DRAFT
        assert draft.model == ScoringModel.STANDARD
        assert draft.school_type == SchoolType.PRIMARY
        assert draft.term_name == TermName.SECOND_TERM
        assert draft.academic_year == "2024-2025"
        # no special-needs learners reported earns the partial welfare credit
        assert draft.breakdown.total_score == 6

    def test_secondary_uses_taps(self, manager):
        report = create_report("R-2", "SCH-002", "Secondary", manager, IN_SECOND_TERM)
        assert report.model == ScoringModel.TAPS
        assert len(report.breakdown.categories) == 6

    def test_closed_window(self, manager):
        with pytest.raises(SubmissionWindowClosed):
            create_report("R-1", "SCH-001", "primary", manager, AFTER_SECOND_TERM)

    def test_initial_inputs_scored_partially(self, manager, standard_inputs):
        report = create_report(
            "R-1", "SCH-001", "nursery", manager, IN_SECOND_TERM,
            category_inputs={"community": standard_inputs["community"]},
        )
        assert report.breakdown.categories[-1].score == 50
        assert report.breakdown.total_score == 56

    def test_unknown_category_rejected(self, manager):
        with pytest.raises(ValueError):
            create_report("R-1", "SCH-001", "primary", manager, IN_SECOND_TERM,
                          category_inputs={"academics": {}})

    def test_inputs_must_be_object(self, manager):
        with pytest.raises(ValueError, match="must be an object"):
            create_report("R-1", "SCH-001", "primary", manager, IN_SECOND_TERM,
                          category_inputs=[1, 2])


class TestSaveDraft:
    """Section saves merge and rescore."""

    def test_merge(self, draft):
        first = save_draft(draft, "attendance", {"student_attendance_rate": 100})
        second = save_draft(first, "attendance", {"teacher_attendance_rate": 100})
        assert second.category_inputs["attendance"] == {
            "student_attendance_rate": 100,
            "teacher_attendance_rate": 100,
        }
        assert second.breakdown.total_score == 91
        assert draft.category_inputs == {}

    def test_submitted_not_editable(self, draft, manager, standard_inputs):
        report = draft
        for category, inputs in standard_inputs.items():
            report = save_draft(report, category, inputs)
        submitted = submit_report(report, manager, IN_SECOND_TERM, generator=NotCalled())
        with pytest.raises(ReportNotEditable):
            save_draft(submitted, "community", {"ngo_partnerships": 0})


class TestSubmitReport:
    """Strict scoring and recommendations at submit time."""

    @pytest.fixture
    def complete_draft(self, draft, standard_inputs):
        report = draft
        for category, inputs in standard_inputs.items():
            report = save_draft(report, category, inputs)
        return report

    def test_full_marks_submission(self, complete_draft, manager):
        submitted = submit_report(complete_draft, manager, IN_SECOND_TERM, generator=NotCalled())
        assert submitted.status == ReportStatus.SUBMITTED
        assert submitted.breakdown.total_score == 1000
        assert submitted.breakdown.rating == RatingLevel.OUTSTANDING
        assert submitted.recommendations == ()
        assert submitted.submitted_at == IN_SECOND_TERM

    def test_weak_school_gets_recommendations(self, complete_draft, manager):
        weak = save_draft(complete_draft, "community", {k: 0 for k in complete_draft.category_inputs["community"]})
        submitted = submit_report(weak, manager, IN_SECOND_TERM, generator=lambda payload: {})
        assert [r.category.value for r in submitted.recommendations] == ["community"]
        assert submitted.breakdown.total_score == 950

    def test_second_submit_rejected(self, complete_draft, manager):
        submitted = submit_report(complete_draft, manager, IN_SECOND_TERM, generator=NotCalled())
        before = submitted.to_dict()
        with pytest.raises(AlreadySubmitted) as exc:
            submit_report(submitted, manager, IN_SECOND_TERM, generator=NotCalled())
        assert exc.value.report_id == "R-1"
        assert submitted.to_dict() == before

    def test_incomplete_rejected(self, draft, manager):
        report = save_draft(draft, "attendance", {"student_attendance_rate": 90})
        with pytest.raises(MissingCategoryInput):
            submit_report(report, manager, IN_SECOND_TERM)

    def test_window_closed(self, complete_draft, manager):
        with pytest.raises(SubmissionWindowClosed):
            submit_report(complete_draft, manager, AFTER_SECOND_TERM)

    def test_other_term_window_open(self, complete_draft, manager):
        with pytest.raises(SubmissionWindowClosed):
            submit_report(complete_draft, manager, date(2025, 7, 2))

    def test_expired_draft_rejected(self, complete_draft, manager):
        [expired] = expire_drafts([complete_draft], manager, AFTER_SECOND_TERM)
        with pytest.raises(ReportNotEditable):
            submit_report(expired, manager, IN_SECOND_TERM)

    def test_taps_submission(self, manager):
        report = create_report("R-9", "SCH-009", "secondary", manager, IN_SECOND_TERM,
                               category_inputs=_load("taps_full_marks.json"))
        submitted = submit_report(report, manager, IN_SECOND_TERM, generator=NotCalled())
        assert submitted.breakdown.total_score == 450
        assert submitted.breakdown.rating == TAPSRatingGrade.A


class TestExpireDrafts:
    """Drafts left open past their window expire."""

    def test_expires_only_past_drafts(self, draft, manager):
        assert expire_drafts([draft], manager, date(2025, 4, 4))[0].status == ReportStatus.DRAFT
        assert expire_drafts([draft], manager, AFTER_SECOND_TERM)[0].status == ReportStatus.EXPIRED_DRAFT

    def test_submitted_untouched(self, draft, manager, standard_inputs):
        report = draft
        for category, inputs in standard_inputs.items():
            report = save_draft(report, category, inputs)
        submitted = submit_report(report, manager, IN_SECOND_TERM, generator=NotCalled())
        assert expire_drafts([submitted], manager, AFTER_SECOND_TERM) == [submitted]

    def test_unconfigured_term_left_alone(self, draft):
        manager = TermWindowManager.from_dicts([
            {"term_number": 1, "start_date": "2024-12-01", "end_date": "2024-12-20"},
        ])
        assert expire_drafts([draft], manager, AFTER_SECOND_TERM)[0].status == ReportStatus.DRAFT


class TestReportFromDict:
    """Reports round-trip through stored JSON."""

    def test_round_trip(self, draft):
        report = save_draft(draft, "community", {"ngo_partnerships": 2})
        restored = report_from_dict(report.to_dict())
        assert restored.category_inputs == report.category_inputs
        assert restored.breakdown == report.breakdown
        assert restored.status == ReportStatus.DRAFT

    def test_model_mismatch_rejected(self, draft):
        data = draft.to_dict()
        data["model"] = "taps"
        with pytest.raises(ValueError):
            report_from_dict(data)

    def test_missing_key(self, draft):
        data = copy.deepcopy(draft.to_dict())
        del data["academic_year"]
        with pytest.raises(ValueError, match="academic_year"):
            report_from_dict(data)

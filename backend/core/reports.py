"""
reports.py — School assessment report lifecycle.

    draft ──submit──▶ submitted
      │
      └──window closes──▶ expired_draft

Reports are immutable values; every transition returns a new report. The
engine holds no locks: callers must keep at most one submit per report id
in flight, and a submit on anything but a draft is rejected.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import AlreadySubmitted, ReportNotEditable, SubmissionWindowClosed
from core.models import ReportRecommendation, ScoreBreakdown
from core.recommendations import TextGenerator, plan_recommendations
from core.rubrics import ScoringModel, TermName, parse_category
from core.school_type import SchoolType, parse_school_type, scoring_model_for
from core.scoring import breakdown_from_dict, compute_score, parse_model
from core.terms import TermSubmissionConfig, TermWindowManager, to_date

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    EXPIRED_DRAFT = "expired_draft"


@dataclass(frozen=True)
class SchoolAssessmentReport:
    report_id: str
    school_id: str
    school_type: SchoolType
    model: ScoringModel
    term_name: TermName
    academic_year: str
    status: ReportStatus = ReportStatus.DRAFT
    category_inputs: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    breakdown: Optional[ScoreBreakdown] = None
    recommendations: Tuple[ReportRecommendation, ...] = ()
    submitted_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "school_id": self.school_id,
            "school_type": self.school_type.value,
            "model": self.model.value,
            "term_name": self.term_name.value,
            "academic_year": self.academic_year,
            "status": self.status.value,
            "category_inputs": {k: dict(v) for k, v in self.category_inputs.items()},
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }


def report_from_dict(data: Mapping[str, Any]) -> SchoolAssessmentReport:
    """Rebuild a report from stored JSON.

    The stored model must match the school type. Recommendations are not
    read back; they are regenerated on submit.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Report must be an object.")
    for key in ("report_id", "school_id", "school_type", "term_name", "academic_year"):
        if not data.get(key):
            raise ValueError(f"Report is missing '{key}'.")

    school_type = parse_school_type(data["school_type"])
    model = scoring_model_for(school_type)
    if data.get("model") and parse_model(data["model"]) != model:
        raise ValueError(f"A {school_type.value} school report is scored with the {model.value} model.")
    term_name = TermName(data["term_name"])
    status = ReportStatus(data.get("status") or ReportStatus.DRAFT.value)

    inputs = data.get("category_inputs") or {}
    if not isinstance(inputs, Mapping):
        raise ValueError("'category_inputs' must be an object.")
    submitted_at = data.get("submitted_at")
    breakdown = breakdown_from_dict(data["breakdown"]) if data.get("breakdown") else None
    if breakdown is not None and breakdown.model != model:
        raise ValueError("Stored breakdown was scored with a different model.")
    return SchoolAssessmentReport(
        report_id=str(data["report_id"]),
        school_id=str(data["school_id"]),
        school_type=school_type,
        model=model,
        term_name=term_name,
        academic_year=str(data["academic_year"]),
        status=status,
        category_inputs=_normalize_inputs(model, inputs),
        breakdown=breakdown,
        submitted_at=datetime.fromisoformat(submitted_at) if submitted_at else None,
    )


def _normalize_inputs(model: ScoringModel, inputs: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    if not isinstance(inputs, Mapping):
        raise ValueError("Category inputs must be an object.")
    out: Dict[str, Dict[str, Any]] = {}
    for key, values in inputs.items():
        category = parse_category(model, key)
        if not isinstance(values, Mapping):
            raise ValueError(f"Inputs for '{category.value}' must be an object.")
        out[category.value] = dict(values)
    return out


def _as_datetime(now: Union[date, datetime]) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime(now.year, now.month, now.day)


# ── Transitions ─────────────────────────────────────────────────────

def create_report(
    report_id: str,
    school_id: str,
    school_type: Any,
    manager: TermWindowManager,
    now: Union[date, datetime],
    category_inputs: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> SchoolAssessmentReport:
    """Open a draft in the current term window. The scoring model is fixed here."""
    if not manager.is_open_for_school(school_id, now):
        raise SubmissionWindowClosed("No term submission window is open.")
    window = manager.get_active_term_window(now)
    school_type = parse_school_type(school_type)
    model = scoring_model_for(school_type)
    inputs = _normalize_inputs(model, category_inputs or {})
    return SchoolAssessmentReport(
        report_id=report_id,
        school_id=school_id,
        school_type=school_type,
        model=model,
        term_name=window.term_name,
        academic_year=window.academic_year,
        category_inputs=inputs,
        breakdown=compute_score(model, inputs, require_complete=False),
    )


def save_draft(
    report: SchoolAssessmentReport,
    category: Any,
    inputs: Mapping[str, Any],
) -> SchoolAssessmentReport:
    """Merge one section's answers into a draft and rescore it partially."""
    if report.status != ReportStatus.DRAFT:
        raise ReportNotEditable(f"Report '{report.report_id}' is {report.status.value} and cannot be edited.")
    category = parse_category(report.model, category)
    merged = {k: dict(v) for k, v in report.category_inputs.items()}
    merged[category.value] = {**merged.get(category.value, {}), **dict(inputs)}
    return replace(
        report,
        category_inputs=merged,
        breakdown=compute_score(report.model, merged, require_complete=False),
        recommendations=(),
    )


def _window_is_for(report: SchoolAssessmentReport, manager: TermWindowManager, now) -> bool:
    if not manager.is_open_for_school(report.school_id, now):
        return False
    window = manager.get_active_term_window(now)
    return window.term_name == report.term_name and window.academic_year == report.academic_year


def submit_report(
    report: SchoolAssessmentReport,
    manager: TermWindowManager,
    now: Union[date, datetime],
    generator: Optional[TextGenerator] = None,
    **planner_options,
) -> SchoolAssessmentReport:
    """
    Score a draft strictly, plan its recommendations and mark it submitted.

    Raises AlreadySubmitted for a submitted report (which is left as is),
    ReportNotEditable for an expired draft, SubmissionWindowClosed when the
    report's term window is not open, MissingCategoryInput for unanswered
    required fields.
    """
    if report.status == ReportStatus.SUBMITTED:
        raise AlreadySubmitted(report.report_id)
    if report.status != ReportStatus.DRAFT:
        raise ReportNotEditable(f"Report '{report.report_id}' is {report.status.value} and cannot be submitted.")
    if not _window_is_for(report, manager, now):
        raise SubmissionWindowClosed(
            f"The {report.term_name.value} {report.academic_year} submission window is not open."
        )

    breakdown = compute_score(report.model, report.category_inputs, require_complete=True)
    recommendations = plan_recommendations(
        breakdown, school_type=report.school_type.value, generator=generator, **planner_options
    )
    logger.info(
        "Report %s submitted: %s/%s (%s), %d recommendations.",
        report.report_id, breakdown.total_score, breakdown.total_max,
        breakdown.rating.value, len(recommendations),
    )
    return replace(
        report,
        status=ReportStatus.SUBMITTED,
        breakdown=breakdown,
        recommendations=tuple(recommendations),
        submitted_at=_as_datetime(now),
    )


def _report_window(report: SchoolAssessmentReport, manager: TermWindowManager) -> Optional[TermSubmissionConfig]:
    """The concrete window of the report's term in the report's academic year."""
    first_year = int(report.academic_year.split("-")[0])
    for term in manager.terms:
        if term.term_name != report.term_name:
            continue
        for window in term.occurrences((first_year, first_year + 1)):
            if window.academic_year == report.academic_year:
                return window
    return None


def expire_drafts(
    reports: Iterable[SchoolAssessmentReport],
    manager: TermWindowManager,
    now: Union[date, datetime],
) -> List[SchoolAssessmentReport]:
    """Mark drafts whose term window has ended as expired_draft.

    Drafts without a configured window are left alone.
    """
    today = to_date(now)
    out = []
    expired = 0
    for report in reports:
        if report.status == ReportStatus.DRAFT:
            window = _report_window(report, manager)
            if window is not None and today > window.end_date:
                report = replace(report, status=ReportStatus.EXPIRED_DRAFT)
                expired += 1
        out.append(report)
    if expired:
        logger.info("Expired %d draft report(s) as of %s.", expired, today.isoformat())
    return out

"""
Report routes — draft, submit and expiry transitions for assessment reports.

Reports travel as JSON (see SchoolAssessmentReport.to_dict); persistence
belongs to the caller.
"""

from fastapi import APIRouter, HTTPException

from core.errors import AssessmentError
from core.recommendations import planner_options
from core.reports import create_report, expire_drafts, report_from_dict, save_draft, submit_report
from core.settings import get_settings
from core.taps_scoring import calculate_improvement_metrics
from routes.common import manager_from_payload, now_from_payload, require_dict, to_http_error

router = APIRouter()


@router.post("/create")
async def create(payload: dict):
    """Open a draft for the current term window."""
    manager = manager_from_payload(payload)
    now = now_from_payload(payload)
    for key in ("report_id", "school_id", "school_type"):
        if not payload.get(key):
            raise HTTPException(400, f"'{key}' is required.")
    try:
        report = create_report(
            str(payload["report_id"]),
            str(payload["school_id"]),
            payload["school_type"],
            manager,
            now,
            category_inputs=payload.get("inputs") or {},
        )
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)
    return report.to_dict()


@router.post("/draft")
async def draft(payload: dict):
    """Save one section of a draft and return its partial score."""
    inputs = require_dict(payload, "inputs")
    try:
        report = report_from_dict(require_dict(payload, "report"))
        report = save_draft(report, payload.get("category"), inputs)
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)
    return report.to_dict()


# plain def: the text generator makes a blocking HTTP call
@router.post("/submit")
def submit(payload: dict):
    """
    Submit a draft: strict scoring plus recommendations.

    409 when the report is already submitted, expired, or its term
    window is not open; 422 with the missing fields when incomplete.
    """
    manager = manager_from_payload(payload)
    now = now_from_payload(payload)
    try:
        report = report_from_dict(require_dict(payload, "report"))
        submitted = submit_report(report, manager, now, **planner_options(get_settings()))
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)
    return submitted.to_dict()


@router.post("/expire")
async def expire(payload: dict):
    """Mark drafts whose term window has closed as expired."""
    manager = manager_from_payload(payload)
    now = now_from_payload(payload)
    rows = payload.get("reports")
    if not isinstance(rows, list):
        raise HTTPException(400, "'reports' must be a list.")
    try:
        reports = [report_from_dict(r) for r in rows]
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)
    updated = expire_drafts(reports, manager, now)
    return {
        "expired": sum(1 for old, new in zip(reports, updated) if old.status != new.status),
        "reports": [r.to_dict() for r in updated],
    }


@router.post("/improvement-metrics")
async def improvement_metrics(payload: dict):
    """TAPS attendance increase from earlier terms' inputs."""
    previous = payload.get("previous_inputs")
    if not isinstance(previous, list) or not all(isinstance(p, dict) for p in previous):
        raise HTTPException(400, "'previous_inputs' must be a list of objects.")
    current = {}
    for key in ("current_teacher_attendance", "current_learners_attendance"):
        value = payload.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise HTTPException(400, f"'{key}' must be a number.")
        current[key] = value
    try:
        return calculate_improvement_metrics(previous, **current)
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)

"""
Shared request helpers — payload parsing and error translation for routes.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException

from core.errors import (
    AlreadySubmitted,
    AssessmentError,
    MissingCategoryInput,
    OutOfRangeMetric,
    OverlappingTermWindows,
    ReportNotEditable,
    SubmissionWindowClosed,
)
from core.rubrics import ScoringModel
from core.school_type import scoring_model_for
from core.scoring import parse_model
from core.terms import TermWindowManager, to_date

CONFLICT_ERRORS = (AlreadySubmitted, OverlappingTermWindows, SubmissionWindowClosed, ReportNotEditable)


def to_http_error(exc: Exception) -> HTTPException:
    """Map an engine error (or a plain ValueError) onto an HTTP error."""
    if isinstance(exc, MissingCategoryInput):
        return HTTPException(422, {"message": str(exc), "category": exc.category, "fields": exc.fields})
    if isinstance(exc, OutOfRangeMetric):
        return HTTPException(422, {"message": str(exc), "field": exc.table_name})
    if isinstance(exc, CONFLICT_ERRORS):
        return HTTPException(409, str(exc))
    return HTTPException(400, str(exc))


def require_dict(payload: Any, key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if not isinstance(value, dict):
        raise HTTPException(400, f"'{key}' must be an object.")
    return value


def model_from_payload(payload: dict) -> ScoringModel:
    """Scoring model from 'model', or derived from 'school_type'."""
    try:
        if payload.get("model"):
            return parse_model(payload["model"])
        if payload.get("school_type"):
            return scoring_model_for(payload["school_type"])
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    raise HTTPException(400, "Provide 'model' or 'school_type'.")


def now_from_payload(payload: dict) -> datetime:
    """'now' from the payload (ISO date or datetime), else the server clock."""
    raw: Optional[str] = payload.get("now")
    if raw is None:
        return datetime.now()
    try:
        day = to_date(raw)
    except AssessmentError:
        raise HTTPException(400, f"'now' must be an ISO date, got {raw!r}.")
    return datetime(day.year, day.month, day.day)


def manager_from_payload(payload: dict) -> TermWindowManager:
    terms = payload.get("terms")
    if not isinstance(terms, list) or not terms:
        raise HTTPException(400, "No term configs provided.")
    try:
        return TermWindowManager.from_dicts(terms)
    except AssessmentError as exc:
        raise to_http_error(exc)

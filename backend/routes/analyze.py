"""
Analyze routes — analytics across submitted reports.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException

from core.analytics import (
    compute_category_gap_analysis,
    compute_rating_distribution,
    compute_score_distribution,
)
from core.errors import AssessmentError
from core.models import ScoreBreakdown
from core.rubrics import ScoringModel
from core.scoring import breakdown_from_dict, parse_model
from routes.common import to_http_error

router = APIRouter()


def _breakdowns_from_payload(payload: dict) -> List[ScoreBreakdown]:
    """Extract score breakdowns from request payload."""
    rows = payload.get("breakdowns")
    if not isinstance(rows, list):
        raise HTTPException(400, "No breakdowns provided.")
    try:
        return [breakdown_from_dict(r) for r in rows]
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)


def _model_hint(payload: dict) -> Optional[ScoringModel]:
    if not payload.get("model"):
        return None
    try:
        return parse_model(payload["model"])
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.post("/category-gaps")
async def category_gaps(payload: dict):
    """Average category scores against their maximum; weakest and strongest."""
    breakdowns = _breakdowns_from_payload(payload)
    try:
        return compute_category_gap_analysis(breakdowns, _model_hint(payload))
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.post("/rating-distribution")
async def rating_distribution(payload: dict):
    """Reports per rating."""
    breakdowns = _breakdowns_from_payload(payload)
    try:
        return compute_rating_distribution(breakdowns, _model_hint(payload))
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.post("/score-distribution")
async def score_distribution(payload: dict):
    """Reports per rating score range."""
    breakdowns = _breakdowns_from_payload(payload)
    try:
        return compute_score_distribution(breakdowns, _model_hint(payload))
    except ValueError as exc:
        raise HTTPException(400, str(exc))

"""
Scoring routes — rubric metadata and score computation.
"""

from fastapi import APIRouter, HTTPException

from core.errors import AssessmentError
from core.rubrics import rubric_summary
from core.scoring import compute_score
from routes.common import model_from_payload, require_dict, to_http_error

router = APIRouter()


@router.get("/models")
async def models():
    """Weights, totals, rating scales and band tables of both models."""
    return rubric_summary()


@router.post("/compute")
async def compute(payload: dict):
    """
    Score one report's inputs.

    Body: {model | school_type, inputs: {category: {field: value}}, draft}.
    Drafts score whatever has been answered; otherwise every required
    field must be present.
    """
    model = model_from_payload(payload)
    inputs = require_dict(payload, "inputs")
    draft = payload.get("draft", False)
    if not isinstance(draft, bool):
        raise HTTPException(400, "'draft' must be true or false.")
    try:
        breakdown = compute_score(model, inputs, require_complete=not draft)
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)
    return breakdown.to_dict()

"""
Recommendation routes — weak-category planning for a scored report.
"""

from fastapi import APIRouter

from core.ai_insights import ai_mode
from core.errors import AssessmentError
from core.recommendations import identify_weak_categories, plan_recommendations, planner_options
from core.scoring import breakdown_from_dict, compute_score
from core.settings import get_settings
from routes.common import model_from_payload, require_dict, to_http_error

router = APIRouter()


# plain def: the text generator makes a blocking HTTP call
@router.post("/plan")
def plan(payload: dict):
    """
    Weakest categories with recommendation text.

    Body: {breakdown} or {model | school_type, inputs}, plus optional
    school_type. Text comes from the language model when AI is enabled,
    otherwise (or on failure) from fixed templates.
    """
    try:
        if payload.get("breakdown") is not None:
            breakdown = breakdown_from_dict(require_dict(payload, "breakdown"))
        else:
            breakdown = compute_score(model_from_payload(payload), require_dict(payload, "inputs"))
    except (AssessmentError, ValueError) as exc:
        raise to_http_error(exc)

    options = planner_options(get_settings())
    recommendations = plan_recommendations(
        breakdown, school_type=payload.get("school_type"), **options
    )
    return {
        "model": breakdown.model.value,
        "mode": ai_mode(),
        "breakdown": breakdown.to_dict(),
        "weak_categories": [w.to_dict() for w in identify_weak_categories(breakdown, **options)],
        "recommendations": [r.to_dict() for r in recommendations],
    }

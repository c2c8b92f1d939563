"""
scoring.py — Score aggregation, rating assignment and model dispatch.

compute_score(model, category_inputs) is the single entry point callers use;
the scoring model picks the category scorer, weight table and rating scale.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from core.errors import IncompleteScoreBreakdown
from core.models import CategoryScoreBreakdown, ScoreBreakdown, rating_description, rating_label
from core.rubrics import (
    MODEL_CATEGORIES,
    MODEL_RATING_THRESHOLDS,
    MODEL_TOTAL_MAX,
    AnyRating,
    ScoringModel,
    category_max,
    parse_category,
)
from core.standard_scoring import calculate_all_category_scores
from core.taps_scoring import calculate_all_taps_category_scores


@dataclass(frozen=True)
class ModelDefinition:
    model: ScoringModel
    score_all: Callable[..., List[CategoryScoreBreakdown]]


MODEL_DEFINITIONS: Dict[ScoringModel, ModelDefinition] = {
    ScoringModel.STANDARD: ModelDefinition(ScoringModel.STANDARD, calculate_all_category_scores),
    ScoringModel.TAPS: ModelDefinition(ScoringModel.TAPS, calculate_all_taps_category_scores),
}


def parse_model(value: Any) -> ScoringModel:
    try:
        return ScoringModel(value.value if isinstance(value, ScoringModel) else str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown scoring model '{value}'. Use one of: standard, taps.")


def calculate_total_score(model: ScoringModel, categories: Iterable[CategoryScoreBreakdown]) -> int:
    """Sum category scores after checking they cover the model exactly once."""
    model = parse_model(model)
    categories = list(categories)
    expected = set(MODEL_CATEGORIES[model])
    seen = [c.category for c in categories]

    duplicates = sorted({c.value for c in seen if seen.count(c) > 1})
    if duplicates:
        raise IncompleteScoreBreakdown(f"Duplicate categories: {', '.join(duplicates)}")
    foreign = sorted(c.value for c in seen if c not in expected)
    if foreign:
        raise IncompleteScoreBreakdown(
            f"Categories not part of the {model.value} model: {', '.join(foreign)}"
        )
    missing = [c.value for c in MODEL_CATEGORIES[model] if c not in set(seen)]
    if missing:
        raise IncompleteScoreBreakdown(f"Missing categories: {', '.join(missing)}")

    return sum(c.score for c in categories)


def assign_rating(total_score: float, model: ScoringModel) -> AnyRating:
    """Map a total onto the model's rating scale.

    A total sitting exactly on a cutoff gets the higher band. Negative totals
    fall into the lowest band.
    """
    model = parse_model(model)
    total_max = MODEL_TOTAL_MAX[model]
    thresholds = MODEL_RATING_THRESHOLDS[model]
    rating = thresholds[0].rating
    for t in thresholds:
        # integer cross-multiplication, no float drift at the cutoffs
        if total_score * 100 >= t.min_percentage * total_max:
            rating = t.rating
    return rating


def get_rating_label(rating: AnyRating) -> str:
    return rating_label(rating)


def get_rating_description(rating: AnyRating) -> str:
    return rating_description(rating)


def build_breakdown(model: ScoringModel, categories: Iterable[CategoryScoreBreakdown]) -> ScoreBreakdown:
    model = parse_model(model)
    order = {c: i for i, c in enumerate(MODEL_CATEGORIES[model])}
    categories = list(categories)
    total = calculate_total_score(model, categories)
    return ScoreBreakdown(
        model=model,
        categories=tuple(sorted(categories, key=lambda c: order[c.category])),
        total_score=total,
        total_max=MODEL_TOTAL_MAX[model],
        rating=assign_rating(total, model),
    )


def compute_score(
    model: ScoringModel,
    category_inputs: Optional[Mapping[str, Mapping[str, Any]]],
    require_complete: bool = True,
) -> ScoreBreakdown:
    """Score every category of ``model`` and rate the total.

    ``require_complete=False`` scores a partially filled draft; missing
    fields earn nothing instead of raising MissingCategoryInput.
    """
    definition = MODEL_DEFINITIONS[parse_model(model)]
    categories = definition.score_all(category_inputs or {}, require_complete=require_complete)
    return build_breakdown(definition.model, categories)


def breakdown_from_dict(data: Mapping[str, Any]) -> ScoreBreakdown:
    """Rebuild a breakdown from ``ScoreBreakdown.to_dict()`` output.

    Only category, score and raw inputs are read; totals and the rating are
    recomputed so a tampered payload cannot carry an inconsistent rating.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Breakdown must be an object.")
    model = parse_model(data.get("model"))
    rows = data.get("categories")
    if not isinstance(rows, list):
        raise ValueError("Breakdown 'categories' must be a list.")

    categories = []
    for row in rows:
        if not isinstance(row, Mapping):
            raise ValueError("Each breakdown category must be an object.")
        category = parse_category(model, row.get("category"))
        score = row.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) \
                or not math.isfinite(score) or score != int(score):
            raise ValueError(f"Score for '{category.value}' must be a whole number.")
        categories.append(CategoryScoreBreakdown(
            category=category,
            raw_inputs=row.get("raw_inputs") or {},
            score=int(score),
            category_max=category_max(category),
        ))
    return build_breakdown(model, categories)

"""
models.py — Score breakdown and recommendation data model.

Plain frozen dataclasses; every object can be rendered to a JSON-safe dict
with ``to_dict()`` for the API layer.
"""

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from core.rubrics import (
    AnyCategory,
    AnyRating,
    MODEL_RATING_THRESHOLDS,
    RecommendationPriority,
    ScoringModel,
    category_label,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (1.5 -> 2, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def percentage_of(score: float, maximum: float) -> int:
    if maximum <= 0:
        return 0
    return round_half_up(score / maximum * 100)


def clamp_category_score(category: AnyCategory, raw_score: float, maximum: int) -> int:
    """Round a summed category score and clamp it into [0, maximum].

    Partially saved drafts and out-of-scale inputs can push the sum outside
    the category range; that is logged, not raised.
    """
    score = round_half_up(raw_score)
    if score > maximum or score < 0:
        logger.warning(
            "Category '%s' scored %s outside [0, %s]; clamping.",
            category.value, score, maximum,
        )
        score = max(0, min(score, maximum))
    return score


def rating_label(rating: AnyRating) -> str:
    for thresholds in MODEL_RATING_THRESHOLDS.values():
        for t in thresholds:
            if t.rating == rating:
                return t.label
    return str(rating.value)


def rating_description(rating: AnyRating) -> str:
    for thresholds in MODEL_RATING_THRESHOLDS.values():
        for t in thresholds:
            if t.rating == rating:
                return t.description
    return ""


# ── Scores ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryScoreBreakdown:
    category: AnyCategory
    raw_inputs: Mapping[str, Any]
    score: int
    category_max: int

    def __post_init__(self):
        if not 0 <= self.score <= self.category_max:
            raise ValueError(
                f"Score {self.score} for '{self.category.value}' is outside [0, {self.category_max}]."
            )
        object.__setattr__(self, "raw_inputs", MappingProxyType(dict(self.raw_inputs)))

    @property
    def label(self) -> str:
        return category_label(self.category)

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.category_max)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "label": self.label,
            "score": self.score,
            "max": self.category_max,
            "percentage": self.percentage,
            "raw_inputs": dict(self.raw_inputs),
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    model: ScoringModel
    categories: Tuple[CategoryScoreBreakdown, ...]
    total_score: int
    total_max: int
    rating: AnyRating

    @property
    def total_percentage(self) -> int:
        return percentage_of(self.total_score, self.total_max)

    def category(self, name: AnyCategory) -> CategoryScoreBreakdown:
        for c in self.categories:
            if c.category == name:
                return c
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model.value,
            "categories": [c.to_dict() for c in self.categories],
            "total_score": self.total_score,
            "total_max": self.total_max,
            "total_percentage": self.total_percentage,
            "rating": self.rating.value,
            "rating_label": rating_label(self.rating),
            "rating_description": rating_description(self.rating),
        }


# ── Recommendations ─────────────────────────────────────────────────

@dataclass(frozen=True)
class WeakCategory:
    category: AnyCategory
    score: int
    max_score: int
    shortfall: float
    priority: RecommendationPriority

    @property
    def label(self) -> str:
        return category_label(self.category)

    def to_payload(self) -> Dict[str, Any]:
        """The shape handed to the text-generation collaborator."""
        return {
            "category": self.category.value,
            "score": self.score,
            "max": self.max_score,
            "priority": self.priority.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "label": self.label,
            "score": self.score,
            "max": self.max_score,
            "shortfall": round(self.shortfall, 4),
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class ReportRecommendation:
    category: AnyCategory
    priority: RecommendationPriority
    rationale: WeakCategory
    recommendation_text: str
    focus_areas: Tuple[str, ...] = field(default_factory=tuple)
    source: str = "fallback"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "label": category_label(self.category),
            "priority": self.priority.value,
            "rationale": self.rationale.to_dict(),
            "recommendation_text": self.recommendation_text,
            "focus_areas": list(self.focus_areas),
            "source": self.source,
        }

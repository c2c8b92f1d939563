"""
rubrics.py — Scoring rubric tables for both scoring models.

Standard model (nursery / primary): seven categories, 1000 points.
TAPS model (Termly Accountability Performance for Secondary Schools):
six categories, 50 metrics, 450 points.

Every table here is immutable and validated at import time; a bad edit
fails loudly with a ConfigurationError instead of mis-scoring reports.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Tuple, Union

from core.banding import BandTable, OptionTable, make_band_table
from core.errors import ConfigurationError


INF = float("inf")


# ── Enumerations ────────────────────────────────────────────────────

class ScoringModel(str, Enum):
    STANDARD = "standard"
    TAPS = "taps"


class CategoryName(str, Enum):
    ACADEMIC = "academic"
    ATTENDANCE = "attendance"
    INFRASTRUCTURE = "infrastructure"
    TEACHING_QUALITY = "teaching_quality"
    MANAGEMENT = "management"
    STUDENT_WELFARE = "student_welfare"
    COMMUNITY = "community"


class TAPSCategoryName(str, Enum):
    SCHOOL_INPUTS_OPERATIONS = "school_inputs_operations"
    LEADERSHIP = "leadership"
    ACADEMICS = "academics"
    TEACHER_DEVELOPMENT = "teacher_development"
    HEALTH_SAFETY = "health_safety"
    SCHOOL_CULTURE = "school_culture"


AnyCategory = Union[CategoryName, TAPSCategoryName]


class RatingLevel(str, Enum):
    OUTSTANDING = "outstanding"
    VERY_GOOD = "very_good"
    GOOD = "good"
    SATISFACTORY = "satisfactory"
    NEEDS_IMPROVEMENT = "needs_improvement"


class TAPSRatingGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


AnyRating = Union[RatingLevel, TAPSRatingGrade]


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TermName(str, Enum):
    FIRST_TERM = "First Term"
    SECOND_TERM = "Second Term"
    THIRD_TERM = "Third Term"


TERM_NUMBERS: Mapping[TermName, int] = MappingProxyType({
    TermName.FIRST_TERM: 1,
    TermName.SECOND_TERM: 2,
    TermName.THIRD_TERM: 3,
})

# Months are display-only; actual windows come from term configs.
TERM_PERIODS = MappingProxyType({
    1: {"months": "September - December", "description": "First term of the academic year"},
    2: {"months": "January - March", "description": "Second term of the academic year"},
    3: {"months": "April - July", "description": "Third term of the academic year"},
})


# ── Standard model ──────────────────────────────────────────────────

SCORING_WEIGHTS: Mapping[CategoryName, int] = MappingProxyType({
    CategoryName.ACADEMIC: 300,
    CategoryName.ATTENDANCE: 150,
    CategoryName.INFRASTRUCTURE: 150,
    CategoryName.TEACHING_QUALITY: 150,
    CategoryName.MANAGEMENT: 100,
    CategoryName.STUDENT_WELFARE: 100,
    CategoryName.COMMUNITY: 50,
})

TOTAL_MAX_SCORE = 1000

CATEGORY_LABELS: Mapping[CategoryName, str] = MappingProxyType({
    CategoryName.ACADEMIC: "Academic Performance",
    CategoryName.ATTENDANCE: "Attendance",
    CategoryName.INFRASTRUCTURE: "Infrastructure",
    CategoryName.TEACHING_QUALITY: "Teaching Quality",
    CategoryName.MANAGEMENT: "Management",
    CategoryName.STUDENT_WELFARE: "Student Welfare",
    CategoryName.COMMUNITY: "Community Engagement",
})

# Tie-break order for weak-category selection, most important first.
CATEGORY_PRIORITY_ORDER: Tuple[CategoryName, ...] = (
    CategoryName.ACADEMIC,
    CategoryName.TEACHING_QUALITY,
    CategoryName.ATTENDANCE,
    CategoryName.STUDENT_WELFARE,
    CategoryName.MANAGEMENT,
    CategoryName.INFRASTRUCTURE,
    CategoryName.COMMUNITY,
)


@dataclass(frozen=True)
class RatingThreshold:
    rating: AnyRating
    min_percentage: int
    label: str
    description: str = ""


# Ascending; a total at exactly min_percentage of the maximum gets that band.
RATING_THRESHOLDS: Tuple[RatingThreshold, ...] = (
    RatingThreshold(RatingLevel.NEEDS_IMPROVEMENT, 0, "Needs Improvement"),
    RatingThreshold(RatingLevel.SATISFACTORY, 40, "Satisfactory"),
    RatingThreshold(RatingLevel.GOOD, 55, "Good"),
    RatingThreshold(RatingLevel.VERY_GOOD, 70, "Very Good"),
    RatingThreshold(RatingLevel.OUTSTANDING, 85, "Outstanding"),
)


# ── TAPS model ──────────────────────────────────────────────────────

TAPS_SCORING_WEIGHTS: Mapping[TAPSCategoryName, int] = MappingProxyType({
    TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS: 80,  # metrics 1-8
    TAPSCategoryName.LEADERSHIP: 30,                # metrics 9-11
    TAPSCategoryName.ACADEMICS: 200,                # metrics 12-36, grades 7-11
    TAPSCategoryName.TEACHER_DEVELOPMENT: 20,       # metrics 37-38
    TAPSCategoryName.HEALTH_SAFETY: 50,             # metrics 39-43
    TAPSCategoryName.SCHOOL_CULTURE: 70,            # metrics 44-50
})

TAPS_TOTAL_MAX_SCORE = 450

TAPS_CATEGORY_LABELS: Mapping[TAPSCategoryName, str] = MappingProxyType({
    TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS: "School Inputs & Operations",
    TAPSCategoryName.LEADERSHIP: "Leadership",
    TAPSCategoryName.ACADEMICS: "Academics",
    TAPSCategoryName.TEACHER_DEVELOPMENT: "Teacher Development / Accountability",
    TAPSCategoryName.HEALTH_SAFETY: "Health & Safety",
    TAPSCategoryName.SCHOOL_CULTURE: "School Culture / Environment",
})

TAPS_CATEGORY_PRIORITY_ORDER: Tuple[TAPSCategoryName, ...] = (
    TAPSCategoryName.ACADEMICS,
    TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS,
    TAPSCategoryName.LEADERSHIP,
    TAPSCategoryName.SCHOOL_CULTURE,
    TAPSCategoryName.HEALTH_SAFETY,
    TAPSCategoryName.TEACHER_DEVELOPMENT,
)

TAPS_RATING_THRESHOLDS: Tuple[RatingThreshold, ...] = (
    RatingThreshold(TAPSRatingGrade.E, 0, "Critical Support",
                    "Requires immediate intervention and support"),
    RatingThreshold(TAPSRatingGrade.D, 20, "Struggling",
                    "Below expectations, requires focused improvement"),
    RatingThreshold(TAPSRatingGrade.C, 50, "Standard",
                    "Meeting basic expectations with room for growth"),
    RatingThreshold(TAPSRatingGrade.B, 70, "High Achieving",
                    "Strong performance with minor areas for improvement"),
    RatingThreshold(TAPSRatingGrade.A, 85, "Outstanding",
                    "Outstanding performance across all metrics"),
)

# Previous submitted terms needed before attendance increase is auto-derived.
TAPS_AUTO_CALC_REQUIRED_TERMS = 2


# ── TAPS band tables ────────────────────────────────────────────────
# Rows are (lower_bound, upper_bound, points), ascending by raw value.

TAPS_PERCENTAGE_BANDS: Mapping[str, BandTable] = MappingProxyType({
    "ATTENDANCE": make_band_table("ATTENDANCE", [
        (0, 80, 2), (80, 85, 4), (85, 90, 6), (90, 95, 8), (95, 100, 10),
    ]),
    "TRAINED_TEACHERS": make_band_table("TRAINED_TEACHERS", [
        (0, 70, 2), (70, 80, 4), (80, 90, 6), (90, 95, 8), (95, 100, 10),
    ]),
    "PASS_RATE": make_band_table("PASS_RATE", [
        (0, 40, 2), (40, 50, 4), (50, 65, 6), (65, 80, 8), (80, 100, 10),
    ]),
    "HIGH_ACHIEVERS": make_band_table("HIGH_ACHIEVERS", [
        (0, 40, 2), (40, 50, 4), (50, 65, 6), (65, 80, 8), (80, 100, 10),
    ]),
    "PTA_PARTICIPATION": make_band_table("PTA_PARTICIPATION", [
        (0, 50, 2), (50, 60, 4), (60, 70, 6), (70, 80, 8), (80, 100, 10),
    ]),
    # lower is better
    "INCIDENTS": make_band_table("INCIDENTS", [
        (0, 1, 10), (1, 3, 8), (3, 5, 6), (5, 10, 4), (10, 100, 2),
    ], closed="upper"),
    # lower is better; only 0% late earns the top band
    "LATE_PERCENTAGE": make_band_table("LATE_PERCENTAGE", [
        (0, 0, 10), (0, 2, 8), (2, 4, 6), (4, 6, 4), (6, 100, 2),
    ], closed="upper"),
    # change in percentage points against previous terms; a drop is legal
    "INCREASE": make_band_table("INCREASE", [
        (-100, 2, 2), (2, 5, 4), (5, 10, 6), (10, 20, 8), (20, 100, 10),
    ], domain_min=-100),
    "CLUB_PARTICIPATION": make_band_table("CLUB_PARTICIPATION", [
        (0, 50, 2), (50, 60, 4), (60, 70, 6), (70, 80, 8), (80, 100, 10),
    ]),
    "REPORT_CARDS": make_band_table("REPORT_CARDS", [
        (0, 70, 2), (70, 80, 4), (80, 90, 6), (90, 95, 8), (95, 100, 10),
    ]),
})

TAPS_COUNT_BANDS: Mapping[str, BandTable] = MappingProxyType({
    "SESSIONS": make_band_table("SESSIONS", [
        (0, 1, 2), (1, 3, 4), (3, 5, 6), (5, 7, 8), (7, INF, 10),
    ], domain_max=INF),
    "CLUBS": make_band_table("CLUBS", [
        (0, 1, 2), (1, 2, 4), (2, 4, 6), (4, 6, 8), (6, INF, 10),
    ], domain_max=INF),
    "PTA_ACTIVITIES": make_band_table("PTA_ACTIVITIES", [
        (0, 2, 2), (2, 4, 4), (4, 5, 6), (5, 7, 8), (7, INF, 10),
    ], domain_max=INF),
    "PTA_MEETINGS": make_band_table("PTA_MEETINGS", [
        (0, 2, 2), (2, 3, 4), (3, 4, 6), (4, 6, 8), (6, INF, 10),
    ], domain_max=INF),
})

# Learners per teacher; 25 means 1:25. Lower is better.
TAPS_RATIO_BANDS: BandTable = make_band_table("TEACHER_LEARNER_RATIO", [
    (0, 15, 10), (15, 20, 8), (20, 25, 6), (25, 33, 4), (33, INF, 2),
], domain_max=INF, closed="upper")

TAPS_SELECT_OPTIONS: Mapping[str, OptionTable] = MappingProxyType({
    "QUALITY": OptionTable("QUALITY", {
        "excellent": 10, "very_good": 8, "good": 6, "fair": 4, "poor": 2,
    }),
    "DRILL_FREQUENCY": OptionTable("DRILL_FREQUENCY", {
        "weekly": 10, "2_3_per_month": 8, "monthly": 6, "every_2_months": 4, "none": 2,
    }),
    "WATER_ACCESS": OptionTable("WATER_ACCESS", {
        "each_classroom": 10, "every_two_classrooms": 8, "hallway": 6,
        "single_bottle": 4, "none": 2,
    }),
    "REMEDIATION": OptionTable("REMEDIATION", {
        "all_grades_4plus_hrs": 10, "50_99_grades_4plus_hrs": 8,
        "all_grades_2_3_hrs": 6, "some_grades_2_3_hrs": 4, "less_than_2_hrs": 2,
    }),
})


# ── Per-model lookups ───────────────────────────────────────────────

MODEL_CATEGORIES: Mapping[ScoringModel, Tuple[AnyCategory, ...]] = MappingProxyType({
    ScoringModel.STANDARD: tuple(CategoryName),
    ScoringModel.TAPS: tuple(TAPSCategoryName),
})

MODEL_WEIGHTS: Mapping[ScoringModel, Mapping] = MappingProxyType({
    ScoringModel.STANDARD: SCORING_WEIGHTS,
    ScoringModel.TAPS: TAPS_SCORING_WEIGHTS,
})

MODEL_TOTAL_MAX: Mapping[ScoringModel, int] = MappingProxyType({
    ScoringModel.STANDARD: TOTAL_MAX_SCORE,
    ScoringModel.TAPS: TAPS_TOTAL_MAX_SCORE,
})

MODEL_RATING_THRESHOLDS: Mapping[ScoringModel, Tuple[RatingThreshold, ...]] = MappingProxyType({
    ScoringModel.STANDARD: RATING_THRESHOLDS,
    ScoringModel.TAPS: TAPS_RATING_THRESHOLDS,
})

MODEL_PRIORITY_ORDER: Mapping[ScoringModel, Tuple[AnyCategory, ...]] = MappingProxyType({
    ScoringModel.STANDARD: CATEGORY_PRIORITY_ORDER,
    ScoringModel.TAPS: TAPS_CATEGORY_PRIORITY_ORDER,
})


def parse_category(model: ScoringModel, value) -> AnyCategory:
    """Coerce a category value into the enum of ``model``."""
    enum_cls = CategoryName if model == ScoringModel.STANDARD else TAPSCategoryName
    try:
        return enum_cls(value.value if isinstance(value, Enum) else value)
    except ValueError:
        raise ValueError(f"'{value}' is not a {model.value} category.")


def category_label(category: AnyCategory) -> str:
    if isinstance(category, CategoryName):
        return CATEGORY_LABELS[category]
    return TAPS_CATEGORY_LABELS[category]


def category_max(category: AnyCategory) -> int:
    if isinstance(category, CategoryName):
        return SCORING_WEIGHTS[category]
    return TAPS_SCORING_WEIGHTS[category]


# ── Load-time validation ────────────────────────────────────────────

def _validate_model_tables(model: ScoringModel) -> None:
    categories = MODEL_CATEGORIES[model]
    weights = MODEL_WEIGHTS[model]
    if set(weights) != set(categories):
        raise ConfigurationError(f"{model.value}: weight table does not match categories.")
    if sum(weights.values()) != MODEL_TOTAL_MAX[model]:
        raise ConfigurationError(
            f"{model.value}: category maxima sum to {sum(weights.values())}, "
            f"total max is {MODEL_TOTAL_MAX[model]}."
        )
    order = MODEL_PRIORITY_ORDER[model]
    if len(order) != len(categories) or set(order) != set(categories):
        raise ConfigurationError(f"{model.value}: priority order must list every category once.")

    thresholds = MODEL_RATING_THRESHOLDS[model]
    if not thresholds or thresholds[0].min_percentage != 0:
        raise ConfigurationError(f"{model.value}: rating thresholds must start at 0%.")
    for lower, upper in zip(thresholds, thresholds[1:]):
        if upper.min_percentage <= lower.min_percentage:
            raise ConfigurationError(f"{model.value}: rating thresholds must be strictly ascending.")
    if thresholds[-1].min_percentage > 100:
        raise ConfigurationError(f"{model.value}: rating threshold above 100%.")
    if len({t.rating for t in thresholds}) != len(thresholds):
        raise ConfigurationError(f"{model.value}: duplicate rating in thresholds.")


for _model in ScoringModel:
    _validate_model_tables(_model)


def rubric_summary() -> Dict[str, object]:
    """Serializable view of every rubric table, for API consumers."""
    def _thresholds(model: ScoringModel):
        return [
            {
                "rating": t.rating.value,
                "label": t.label,
                "description": t.description,
                "min_percentage": t.min_percentage,
            }
            for t in MODEL_RATING_THRESHOLDS[model]
        ]

    return {
        "models": {
            model.value: {
                "categories": [
                    {
                        "category": c.value,
                        "label": category_label(c),
                        "max": category_max(c),
                    }
                    for c in MODEL_CATEGORIES[model]
                ],
                "total_max": MODEL_TOTAL_MAX[model],
                "rating_thresholds": _thresholds(model),
                "priority_order": [c.value for c in MODEL_PRIORITY_ORDER[model]],
            }
            for model in ScoringModel
        },
        "taps_percentage_bands": {k: t.to_dict() for k, t in TAPS_PERCENTAGE_BANDS.items()},
        "taps_count_bands": {k: t.to_dict() for k, t in TAPS_COUNT_BANDS.items()},
        "taps_ratio_bands": TAPS_RATIO_BANDS.to_dict(),
        "taps_select_options": {k: t.to_dict() for k, t in TAPS_SELECT_OPTIONS.items()},
        "term_periods": {str(n): dict(p) for n, p in TERM_PERIODS.items()},
    }

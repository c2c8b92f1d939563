"""
taps_scoring.py — Category scorer for the TAPS (secondary school) model.

50 metrics across six categories. Every raw metric is banded first:
percentages, counts and the teacher/learner ratio through band tables,
select-type answers through option tables. A metric is worth 10 points,
except the 25 academics metrics (grades 7-11) which are worth 8.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from core.banding import band_points, option_points
from core.errors import MissingCategoryInput
from core.inputs import as_number, as_section, is_present, missing_fields
from core.models import CategoryScoreBreakdown, clamp_category_score
from core.rubrics import (
    TAPS_AUTO_CALC_REQUIRED_TERMS,
    TAPS_COUNT_BANDS,
    TAPS_PERCENTAGE_BANDS,
    TAPS_RATIO_BANDS,
    TAPS_SCORING_WEIGHTS,
    TAPS_SELECT_OPTIONS,
    CategoryName,
    TAPSCategoryName,
)

POINTS_PER_METRIC = 10
ACADEMIC_POINTS_PER_METRIC = 8

ACADEMIC_GRADES = ("grade7", "grade8", "grade9", "grade10", "grade11")
ACADEMIC_METRICS = (
    ("overall_pass_rate", "PASS_RATE"),
    ("english_pass_rate", "PASS_RATE"),
    ("math_pass_rate", "PASS_RATE"),
    ("stem_pass_rate", "PASS_RATE"),
    ("learners_above_70_percent", "HIGH_ACHIEVERS"),
)

_FLAT_ACADEMIC_KEY = re.compile(
    r"^(grade(?:7|8|9|10|11))_(" + "|".join(m for m, _ in ACADEMIC_METRICS) + r")$"
)


@dataclass(frozen=True)
class Metric:
    field: str
    kind: str        # percentage | count | ratio | select
    table: str
    points: int = POINTS_PER_METRIC

    def score(self, data: Mapping[str, Any]) -> float:
        if self.kind == "select":
            return option_points(data.get(self.field), TAPS_SELECT_OPTIONS[self.table], self.points)
        value = as_number(data, self.field)
        if self.kind == "ratio":
            return band_points(value, TAPS_RATIO_BANDS, self.points)
        if self.kind == "count":
            return band_points(value, TAPS_COUNT_BANDS[self.table], self.points)
        return band_points(value, TAPS_PERCENTAGE_BANDS[self.table], self.points)


def _academic_metrics() -> Tuple[Metric, ...]:
    return tuple(
        Metric(f"{grade}_{name}", "percentage", table, ACADEMIC_POINTS_PER_METRIC)
        for grade in ACADEMIC_GRADES
        for name, table in ACADEMIC_METRICS
    )


# ── Rubric ──────────────────────────────────────────────────────────

METRICS: Dict[TAPSCategoryName, Tuple[Metric, ...]] = {
    TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS: (
        Metric("trained_teachers_rate", "percentage", "TRAINED_TEACHERS"),
        Metric("teacher_learner_ratio", "ratio", "TEACHER_LEARNER_RATIO"),
        Metric("teacher_attendance_rate", "percentage", "ATTENDANCE"),
        Metric("teacher_attendance_increase", "percentage", "INCREASE"),
        Metric("teachers_late_percentage", "percentage", "LATE_PERCENTAGE"),
        Metric("sweeper_cleaner_attendance", "percentage", "ATTENDANCE"),
        Metric("learners_attendance_rate", "percentage", "ATTENDANCE"),
        Metric("learners_attendance_increase", "percentage", "INCREASE"),
    ),
    TAPSCategoryName.LEADERSHIP: (
        Metric("project_plan_progress", "select", "QUALITY"),
        Metric("hm_attendance_rate", "percentage", "ATTENDANCE"),
        Metric("leadership_team_attendance", "percentage", "ATTENDANCE"),
    ),
    TAPSCategoryName.ACADEMICS: _academic_metrics(),
    TAPSCategoryName.TEACHER_DEVELOPMENT: (
        Metric("pd_training_sessions", "count", "SESSIONS"),
        Metric("classroom_supervisory_visits", "count", "SESSIONS"),
    ),
    TAPSCategoryName.HEALTH_SAFETY: (
        Metric("student_incidence_rate", "percentage", "INCIDENTS"),
        Metric("teacher_disciplinary_rate", "percentage", "INCIDENTS"),
        Metric("fire_safety_level", "select", "QUALITY"),
        Metric("evacuation_drill_frequency", "select", "DRILL_FREQUENCY"),
        Metric("potable_water_access", "select", "WATER_ACCESS"),
    ),
    TAPSCategoryName.SCHOOL_CULTURE: (
        Metric("extracurricular_clubs", "count", "CLUBS"),
        Metric("learners_in_clubs_percentage", "percentage", "CLUB_PARTICIPATION"),
        Metric("remediation_level", "select", "REMEDIATION"),
        Metric("pta_participation_rate", "percentage", "PTA_PARTICIPATION"),
        Metric("pta_initiated_activities", "count", "PTA_ACTIVITIES"),
        Metric("pta_general_meetings", "count", "PTA_MEETINGS"),
        Metric("parents_collecting_report_cards", "percentage", "REPORT_CARDS"),
    ),
}

REQUIRED_FIELDS: Dict[TAPSCategoryName, Tuple[str, ...]] = {
    category: tuple(m.field for m in metrics) for category, metrics in METRICS.items()
}


def normalize_academics(data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Flatten nested ``{"grade7": {"overall_pass_rate": ..}}`` academics input.

    Flat keys (``grade7_overall_pass_rate``) pass through; when both shapes
    carry the same metric the flat key wins.
    """
    out: Dict[str, Any] = {}
    for key, value in (data or {}).items():
        if key in ACADEMIC_GRADES and isinstance(value, Mapping):
            for metric, metric_value in value.items():
                out.setdefault(f"{key}_{metric}", metric_value)
        elif _FLAT_ACADEMIC_KEY.match(key):
            out[key] = value
    return out


# ── Public API ──────────────────────────────────────────────────────

def score_taps_category(
    category: TAPSCategoryName,
    raw_inputs: Optional[Mapping[str, Any]],
    require_complete: bool = False,
) -> CategoryScoreBreakdown:
    """Score one TAPS category."""
    category = TAPSCategoryName(category)
    data = as_section(raw_inputs, category.value)
    if category == TAPSCategoryName.ACADEMICS:
        data = normalize_academics(data)

    if require_complete:
        missing = missing_fields(data, REQUIRED_FIELDS[category])
        if missing:
            raise MissingCategoryInput(category.value, missing)

    raw = sum(m.score(data) for m in METRICS[category] if is_present(data, m.field))
    maximum = TAPS_SCORING_WEIGHTS[category]
    return CategoryScoreBreakdown(
        category=category,
        raw_inputs=data,
        score=clamp_category_score(category, raw, maximum),
        category_max=maximum,
    )


def calculate_all_taps_category_scores(
    category_inputs: Mapping[str, Mapping[str, Any]],
    require_complete: bool = True,
) -> List[CategoryScoreBreakdown]:
    """Score every TAPS category, in rubric order."""
    return [
        score_taps_category(
            category,
            category_inputs.get(category.value) or category_inputs.get(category) or {},
            require_complete=require_complete,
        )
        for category in TAPSCategoryName
    ]


# ── Attendance increase (metrics 4 and 8) ───────────────────────────

def _round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _previous_rate(report: Mapping[str, Any], taps_field: str, standard_field: str) -> Optional[float]:
    taps = as_section(report.get(TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS.value),
                      TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS.value)
    if is_present(taps, taps_field):
        return as_number(taps, taps_field)
    legacy = as_section(report.get(CategoryName.ATTENDANCE.value), CategoryName.ATTENDANCE.value)
    if is_present(legacy, standard_field):
        return as_number(legacy, standard_field)
    return None


def calculate_improvement_metrics(
    previous_inputs: Sequence[Mapping[str, Any]],
    current_teacher_attendance: Optional[float] = None,
    current_learners_attendance: Optional[float] = None,
) -> Dict[str, Any]:
    """Derive attendance increases from this school's earlier submitted terms.

    ``previous_inputs`` holds the category inputs of each earlier report.
    Standard-model reports contribute their attendance section. Increase is
    current rate minus the mean of earlier rates, to one decimal place.
    """
    result: Dict[str, Any] = {
        "can_auto_calculate": False,
        "previous_term_count": len(previous_inputs),
        "teacher_attendance_increase": None,
        "learners_attendance_increase": None,
    }
    if len(previous_inputs) < TAPS_AUTO_CALC_REQUIRED_TERMS:
        return result

    teacher = [r for r in (_previous_rate(p, "teacher_attendance_rate", "teacher_attendance_rate")
                           for p in previous_inputs) if r is not None]
    learners = [r for r in (_previous_rate(p, "learners_attendance_rate", "student_attendance_rate")
                            for p in previous_inputs) if r is not None]

    result["can_auto_calculate"] = True
    if teacher and current_teacher_attendance is not None:
        result["teacher_attendance_increase"] = _round_one_decimal(
            current_teacher_attendance - sum(teacher) / len(teacher)
        )
    if learners and current_learners_attendance is not None:
        result["learners_attendance_increase"] = _round_one_decimal(
            current_learners_attendance - sum(learners) / len(learners)
        )
    return result

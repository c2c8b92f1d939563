"""
standard_scoring.py — Category scorer for the standard (nursery / primary) model.

Seven categories, each a sum of independently weighted sub-items:
- percentages (0-100) scale linearly onto their points
- 1-5 ratings map (v - 1) / 4 onto their points
- counts earn full points at a target and scale below it
- yes/no items award fixed points
- "lower is better" rates and ratios are inverted

Sub-items are scored only when answered, so partially saved drafts can be
scored. At submit time every required field must be present.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.errors import MissingCategoryInput
from core.inputs import as_flag, as_number, as_section, is_present, missing_fields
from core.models import CategoryScoreBreakdown, clamp_category_score
from core.rubrics import SCORING_WEIGHTS, CategoryName


@dataclass(frozen=True)
class SubItem:
    field: str
    points: float
    rule: Callable[[Any, float], float]
    flag: bool = False
    gate: Optional[str] = None      # only scored when this yes/no field is true
    optional: bool = False          # never required at submit time


# ── Sub-item rules ──────────────────────────────────────────────────

def _percent(v: float, points: float) -> float:
    return v / 100 * points


def _inverse_percent(v: float, points: float) -> float:
    return (100 - v) / 100 * points


def _rating(v: float, points: float) -> float:
    return (v - 1) / 4 * points


def _fixed(v: bool, points: float) -> float:
    return points if v else 0.0


def _capped(target: float) -> Callable[[float, float], float]:
    def rule(v: float, points: float) -> float:
        return min(v / target, 1) * points
    return rule


def _lower_ratio(best: float, worst: float) -> Callable[[float, float], float]:
    """Full points at or below ``best``, none at or above ``worst``."""
    def rule(v: float, points: float) -> float:
        ratio = max(v, best)
        return max(0.0, (worst - ratio) / (worst - best)) * points
    return rule


def _fewer_is_better(ceiling: float) -> Callable[[float, float], float]:
    def rule(v: float, points: float) -> float:
        return max(0.0, (ceiling - v) / ceiling) * points
    return rule


def percent(field: str, points: float, **kw) -> SubItem:
    return SubItem(field, points, _percent, **kw)


def inverse_percent(field: str, points: float) -> SubItem:
    return SubItem(field, points, _inverse_percent)


def rating(field: str, points: float, **kw) -> SubItem:
    return SubItem(field, points, _rating, **kw)


def flag(field: str, points: float) -> SubItem:
    return SubItem(field, points, _fixed, flag=True)


def capped(field: str, target: float, points: float, **kw) -> SubItem:
    return SubItem(field, points, _capped(target), **kw)


# ── Rubric ──────────────────────────────────────────────────────────

SUB_ITEMS: Dict[CategoryName, Tuple[SubItem, ...]] = {
    CategoryName.ACADEMIC: (
        # Grade 6 assessment pass rates (80)
        percent("grade6_math_pass_rate", 26.67),
        percent("grade6_english_pass_rate", 26.67),
        percent("grade6_science_pass_rate", 26.66),
        # CSEC results (80), secondary only
        percent("csec_pass_rate", 50, optional=True),
        capped("csec_subjects_passed", 6, 30, optional=True),
        # Internal assessments (60)
        percent("termly_assessment_completion", 40),
        rating("assessment_quality", 20),
        # Subject diversity (40)
        capped("core_subjects_covered", 8, 20),
        capped("elective_subjects_offered", 4, 20),
        # Literacy and numeracy programmes (40)
        rating("literacy_program_implementation", 20),
        rating("numeracy_program_implementation", 20),
    ),
    CategoryName.ATTENDANCE: (
        percent("student_attendance_rate", 50),
        inverse_percent("student_absenteeism_rate", 20),
        percent("teacher_attendance_rate", 35),
        inverse_percent("teacher_absenteeism_rate", 15),
        percent("student_punctuality_rate", 15),
        percent("teacher_punctuality_rate", 15),
    ),
    CategoryName.INFRASTRUCTURE: (
        # Classrooms (40)
        rating("classroom_condition", 15),
        rating("classroom_capacity_adequacy", 15),
        rating("furniture_condition", 10),
        # Sanitation (30)
        rating("washroom_condition", 12),
        SubItem("washroom_student_ratio", 10, _lower_ratio(10, 40)),
        rating("water_supply_adequacy", 8),
        # Library (25)
        flag("library_exists", 10),
        capped("library_book_count", 500, 8, gate="library_exists"),
        rating("library_condition", 7, gate="library_exists"),
        # Technology (30)
        flag("computer_lab_exists", 8),
        capped("computer_count", 20, 8, gate="computer_lab_exists"),
        flag("internet_access", 8),
        capped("projector_count", 3, 6),
        # Safety (25)
        capped("fire_extinguishers", 4, 6),
        flag("first_aid_kit_available", 6),
        flag("emergency_exits_adequate", 6),
        rating("playground_safety", 7),
    ),
    CategoryName.TEACHING_QUALITY: (
        # Qualified teachers (50)
        percent("percentage_qualified_teachers", 25),
        percent("percentage_trained_teachers", 15),
        SubItem("teacher_student_ratio", 10, _lower_ratio(15, 35)),
        # Professional development (40)
        capped("pd_sessions_attended", 5, 15),
        capped("pd_hours_completed", 20, 15),
        capped("in_house_training_sessions", 3, 10),
        # Lesson planning (30)
        percent("lesson_plans_submitted", 12),
        rating("lesson_plan_quality", 10),
        percent("scheme_of_work_completion", 8),
        # Teaching methods (30)
        rating("differentiated_instruction", 10),
        rating("technology_integration", 10),
        rating("assessment_for_learning", 10),
    ),
    CategoryName.MANAGEMENT: (
        # SBA meetings (25)
        capped("sba_meetings_held", 3, 10),
        flag("sba_meeting_minutes_recorded", 7),
        percent("sba_decisions_implemented", 8),
        # Parent engagement (25)
        capped("pta_meetings_held", 2, 8),
        percent("parent_attendance_rate", 10),
        flag("parent_volunteer_programs", 7),
        # Budget management (25)
        percent("budget_utilization_rate", 10),
        flag("financial_records_up_to_date", 8),
        flag("audit_compliance", 7),
        # Record keeping (25)
        percent("student_records_complete", 10),
        percent("staff_records_complete", 8),
        percent("inventory_records_complete", 7),
    ),
    CategoryName.STUDENT_WELFARE: (
        # Guidance services (30)
        flag("guidance_counselor_available", 12),
        capped("counseling_sessions_provided", 10, 10),
        flag("career_guidance_programs", 8),
        # Extracurricular (25)
        capped("clubs_and_societies", 5, 7),
        capped("sports_teams", 4, 6),
        capped("cultural_activities", 4, 6),
        percent("student_participation_rate", 6),
        # Discipline (25)
        SubItem("disciplinary_incidents", 10, _fewer_is_better(20)),
        flag("discipline_policy_implemented", 8),
        flag("positive_reinforcement_programs", 7),
        # Special needs support (20): see _special_needs_points
        rating("inclusive_education_practices", 8),
    ),
    CategoryName.COMMUNITY: (
        # Community involvement (30)
        capped("community_events_hosted", 3, 12),
        capped("community_volunteers", 10, 10),
        capped("community_projects_completed", 2, 8),
        # External partnerships (20)
        capped("business_partnerships", 2, 7),
        capped("ngo_partnerships", 2, 7),
        capped("government_programs_participation", 2, 6),
    ),
}

SPECIAL_NEEDS_FULL_POINTS = 12
SPECIAL_NEEDS_NONE_ENROLLED_POINTS = 6


def _special_needs_points(data: Mapping[str, Any]) -> float:
    """Support for enrolled special-needs learners; partial credit when none."""
    if is_present(data, "special_needs_students_enrolled") and \
            as_number(data, "special_needs_students_enrolled") > 0:
        if as_flag(data, "special_needs_support_provided"):
            return SPECIAL_NEEDS_FULL_POINTS
        return 0.0
    return SPECIAL_NEEDS_NONE_ENROLLED_POINTS


def required_fields(category: CategoryName, data: Mapping[str, Any]) -> List[str]:
    """Fields that must be answered before a report can be submitted."""
    fields = []
    for item in SUB_ITEMS[category]:
        if item.optional:
            continue
        if item.gate and not (is_present(data, item.gate) and as_flag(data, item.gate)):
            continue
        fields.append(item.field)
    if category == CategoryName.STUDENT_WELFARE:
        fields.append("special_needs_students_enrolled")
        if is_present(data, "special_needs_students_enrolled") and \
                as_number(data, "special_needs_students_enrolled") > 0:
            fields.append("special_needs_support_provided")
    return fields


def _raw_points(category: CategoryName, data: Mapping[str, Any]) -> float:
    score = 0.0
    for item in SUB_ITEMS[category]:
        if item.gate and not (is_present(data, item.gate) and as_flag(data, item.gate)):
            continue
        if item.flag:
            score += item.rule(as_flag(data, item.field), item.points)
        elif is_present(data, item.field):
            score += item.rule(as_number(data, item.field), item.points)
    if category == CategoryName.STUDENT_WELFARE:
        score += _special_needs_points(data)
    return score


# ── Public API ──────────────────────────────────────────────────────

def score_category(
    category: CategoryName,
    raw_inputs: Optional[Mapping[str, Any]],
    require_complete: bool = False,
) -> CategoryScoreBreakdown:
    """Score one standard-model category."""
    category = CategoryName(category)
    data = as_section(raw_inputs, category.value)
    if require_complete:
        missing = missing_fields(data, required_fields(category, data))
        if missing:
            raise MissingCategoryInput(category.value, missing)

    maximum = SCORING_WEIGHTS[category]
    score = clamp_category_score(category, _raw_points(category, data), maximum)
    return CategoryScoreBreakdown(
        category=category,
        raw_inputs=data,
        score=score,
        category_max=maximum,
    )


def calculate_all_category_scores(
    category_inputs: Mapping[str, Mapping[str, Any]],
    require_complete: bool = True,
) -> List[CategoryScoreBreakdown]:
    """Score every standard category, in rubric order."""
    return [
        score_category(
            category,
            category_inputs.get(category.value) or category_inputs.get(category) or {},
            require_complete=require_complete,
        )
        for category in CategoryName
    ]

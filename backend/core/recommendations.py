"""
recommendations.py — Weak-category identification and recommendation planning.

Ranking is deterministic:
  shortfall = 1 - score / category_max   (exact, fractions.Fraction)
  sort by shortfall descending, ties by the model's category priority order
  keep shortfall > MIN_CONCERN_SHORTFALL, at most TOP_K, never padded

Prose comes from a text-generation collaborator. Whatever it returns is
passed through untouched; a category it fails on gets a fixed template.
"""

import logging
from fractions import Fraction
from typing import Any, Callable, Dict, List, Mapping, Optional

from core.ai_insights import generate_recommendation_text
from core.models import ReportRecommendation, ScoreBreakdown, WeakCategory
from core.rubrics import (
    MODEL_PRIORITY_ORDER,
    CategoryName,
    RecommendationPriority,
    TAPSCategoryName,
)

logger = logging.getLogger(__name__)

TOP_K = 3
MIN_CONCERN_SHORTFALL = Fraction(1, 4)
HIGH_PRIORITY_SHORTFALL = Fraction(3, 5)
MEDIUM_PRIORITY_SHORTFALL = Fraction(2, 5)

TextGenerator = Callable[[Dict[str, Any]], Mapping[str, Mapping[str, Any]]]


# ── Fallback templates ──────────────────────────────────────────────

FALLBACK_TEMPLATES: Dict[Any, Dict[str, Any]] = {
    CategoryName.ACADEMIC: {
        "text": "Focus on improving academic outcomes by implementing targeted intervention programs for struggling students, enhancing assessment practices, and diversifying the curriculum to engage all learners.",
        "focus_areas": ("Student intervention programs", "Assessment quality", "Curriculum enrichment"),
    },
    CategoryName.ATTENDANCE: {
        "text": "Address attendance issues by establishing robust tracking systems, engaging parents in attendance improvement initiatives, and creating incentive programs for consistent attendance.",
        "focus_areas": ("Attendance tracking", "Parent engagement", "Incentive programs"),
    },
    CategoryName.INFRASTRUCTURE: {
        "text": "Prioritize infrastructure improvements by conducting a facility needs assessment, seeking funding for critical repairs, and ensuring safety standards are met across all school buildings.",
        "focus_areas": ("Facility assessment", "Maintenance planning", "Safety compliance"),
    },
    CategoryName.TEACHING_QUALITY: {
        "text": "Enhance teaching quality through regular professional development sessions, peer observation and feedback programs, and implementation of modern teaching methodologies.",
        "focus_areas": ("Professional development", "Peer learning", "Teaching innovation"),
    },
    CategoryName.MANAGEMENT: {
        "text": "Strengthen school management by improving record-keeping systems, enhancing parent-school communication, and ensuring regular SBA meetings with documented outcomes.",
        "focus_areas": ("Record management", "Stakeholder communication", "Governance"),
    },
    CategoryName.STUDENT_WELFARE: {
        "text": "Improve student welfare by establishing or strengthening guidance services, expanding extracurricular offerings, and implementing positive discipline approaches.",
        "focus_areas": ("Counseling services", "Extracurricular activities", "Discipline policy"),
    },
    CategoryName.COMMUNITY: {
        "text": "Increase community engagement by organizing regular community events, establishing partnerships with local businesses and NGOs, and participating in government education programs.",
        "focus_areas": ("Community events", "Local partnerships", "Program participation"),
    },
    TAPSCategoryName.SCHOOL_INPUTS_OPERATIONS: {
        "text": "Stabilise school operations by tracking teacher and learner attendance weekly, following up on late arrivals, and planning staffing so every class has a trained teacher.",
        "focus_areas": ("Attendance monitoring", "Punctuality follow-up", "Staff deployment"),
    },
    TAPSCategoryName.LEADERSHIP: {
        "text": "Strengthen school leadership by reviewing the quarterly project plan with the leadership team, agreeing measurable milestones, and keeping leadership attendance consistent.",
        "focus_areas": ("Project plan milestones", "Leadership team routines", "Progress reviews"),
    },
    TAPSCategoryName.ACADEMICS: {
        "text": "Raise pass rates by identifying learners below the pass mark in each grade, running focused English, Mathematics and STEM support, and tracking results after every assessment.",
        "focus_areas": ("Targeted learner support", "Core subject pass rates", "Assessment tracking"),
    },
    TAPSCategoryName.TEACHER_DEVELOPMENT: {
        "text": "Build teacher accountability through a termly calendar of professional development sessions and regular classroom supervisory visits with written feedback.",
        "focus_areas": ("Professional development", "Classroom supervision", "Feedback follow-up"),
    },
    TAPSCategoryName.HEALTH_SAFETY: {
        "text": "Improve health and safety by reviewing incident records, holding regular evacuation drills, maintaining fire safety equipment, and ensuring learners can reach potable water.",
        "focus_areas": ("Incident reduction", "Emergency preparedness", "Water access"),
    },
    TAPSCategoryName.SCHOOL_CULTURE: {
        "text": "Strengthen school culture by expanding clubs and remediation sessions, and by involving parents through PTA activities, general meetings and report card collection.",
        "focus_areas": ("Clubs and remediation", "PTA engagement", "Parent communication"),
    },
}


# ── Weak-category identification ────────────────────────────────────

def as_fraction(value: Any) -> Fraction:
    """Exact threshold; 0.6 becomes 3/5, not the nearest binary float."""
    if isinstance(value, float):
        return Fraction(str(value))
    return Fraction(value)


def planner_options(settings) -> Dict[str, Any]:
    """Planner keyword arguments from a Settings instance."""
    return {
        "top_k": settings.RECOMMENDATION_TOP_K,
        "min_shortfall": as_fraction(settings.MIN_CONCERN_SHORTFALL),
        "high": as_fraction(settings.HIGH_PRIORITY_SHORTFALL),
        "medium": as_fraction(settings.MEDIUM_PRIORITY_SHORTFALL),
    }


def shortfall_ratio(score: int, category_max: int) -> Fraction:
    """1 - score / category_max, exactly."""
    return Fraction(category_max - score, category_max)


def priority_for(
    shortfall: Fraction,
    high: Fraction = HIGH_PRIORITY_SHORTFALL,
    medium: Fraction = MEDIUM_PRIORITY_SHORTFALL,
) -> RecommendationPriority:
    if shortfall > high:
        return RecommendationPriority.HIGH
    if shortfall > medium:
        return RecommendationPriority.MEDIUM
    return RecommendationPriority.LOW


def identify_weak_categories(
    breakdown: ScoreBreakdown,
    top_k: int = TOP_K,
    min_shortfall: Fraction = MIN_CONCERN_SHORTFALL,
    high: Fraction = HIGH_PRIORITY_SHORTFALL,
    medium: Fraction = MEDIUM_PRIORITY_SHORTFALL,
) -> List[WeakCategory]:
    """The ``top_k`` categories furthest below their maximum.

    Only categories whose shortfall is strictly above ``min_shortfall`` are
    considered, so fewer than ``top_k`` (or none) may come back.
    """
    min_shortfall, high, medium = as_fraction(min_shortfall), as_fraction(high), as_fraction(medium)
    rank = {c: i for i, c in enumerate(MODEL_PRIORITY_ORDER[breakdown.model])}

    scored = [(shortfall_ratio(c.score, c.category_max), c) for c in breakdown.categories]
    scored.sort(key=lambda pair: (-pair[0], rank[pair[1].category]))

    weak: List[WeakCategory] = []
    for shortfall, c in scored:
        if len(weak) >= top_k or shortfall <= min_shortfall:
            break
        weak.append(WeakCategory(
            category=c.category,
            score=c.score,
            max_score=c.category_max,
            shortfall=float(shortfall),
            priority=priority_for(shortfall, high, medium),
        ))
    return weak


def build_generator_payload(
    breakdown: ScoreBreakdown,
    weak: List[WeakCategory],
    school_type: Optional[str] = None,
) -> Dict[str, Any]:
    """The structured request handed to the text-generation collaborator."""
    return {
        "school_type": school_type,
        "model": breakdown.model.value,
        "weak_categories": [w.to_payload() for w in weak],
    }


def fallback_recommendation(weak: WeakCategory) -> ReportRecommendation:
    template = FALLBACK_TEMPLATES[weak.category]
    return ReportRecommendation(
        category=weak.category,
        priority=weak.priority,
        rationale=weak,
        recommendation_text=template["text"],
        focus_areas=tuple(template["focus_areas"]),
        source="fallback",
    )


def _from_generated(weak: WeakCategory, generated: Any) -> Optional[ReportRecommendation]:
    if not isinstance(generated, Mapping):
        return None
    text = generated.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    focus = generated.get("focus_areas") or ()
    return ReportRecommendation(
        category=weak.category,
        priority=weak.priority,
        rationale=weak,
        recommendation_text=text,
        focus_areas=tuple(str(f) for f in focus),
        source="ai",
    )


# ── Public API ──────────────────────────────────────────────────────

def plan_recommendations(
    breakdown: ScoreBreakdown,
    school_type: Optional[str] = None,
    generator: Optional[TextGenerator] = None,
    top_k: int = TOP_K,
    min_shortfall: Fraction = MIN_CONCERN_SHORTFALL,
    high: Fraction = HIGH_PRIORITY_SHORTFALL,
    medium: Fraction = MEDIUM_PRIORITY_SHORTFALL,
) -> List[ReportRecommendation]:
    """
    Rank weak categories and attach recommendation prose to each.

    Behavior:
    - No weak categories: returns [] without calling the generator.
    - The generator is called once; an exception (timeouts included) puts
      every category on its fallback template.
    - A category the generator left out, or answered with empty text, gets
      its fallback template. Returned prose is never edited.
    """
    weak = identify_weak_categories(breakdown, top_k, min_shortfall, high, medium)
    if not weak:
        return []

    generator = generator or generate_recommendation_text
    payload = build_generator_payload(breakdown, weak, school_type)
    try:
        generated = generator(payload) or {}
    except Exception as exc:
        logger.warning("Recommendation text generation failed, using fallback text: %s", exc)
        return [fallback_recommendation(w) for w in weak]

    if not isinstance(generated, Mapping):
        logger.warning("Recommendation text generator returned %s, using fallback text.",
                       type(generated).__name__)
        generated = {}

    recommendations = []
    for w in weak:
        rec = _from_generated(w, generated.get(w.category.value))
        recommendations.append(rec or fallback_recommendation(w))
    return recommendations

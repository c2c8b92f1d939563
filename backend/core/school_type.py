"""
school_type.py — School type detection and scoring-model selection.

Head teacher accounts follow hm.{type}{code}@moe.edu.gy where type is
nu (nursery), pr (primary) or se (secondary). Secondary schools are scored
with TAPS; everything else uses the standard model.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional

from core.rubrics import ScoringModel


class SchoolType(str, Enum):
    NURSERY = "nursery"
    PRIMARY = "primary"
    SECONDARY = "secondary"


SCHOOL_TYPE_CODES = {
    "nu": SchoolType.NURSERY,
    "pr": SchoolType.PRIMARY,
    "se": SchoolType.SECONDARY,
}

SCHOOL_TYPE_LABELS = {
    SchoolType.NURSERY: "Nursery School",
    SchoolType.PRIMARY: "Primary School",
    SchoolType.SECONDARY: "Secondary School",
}

HM_EMAIL_PATTERN = re.compile(r"^hm\.([a-z]{2})(\d+)@moe\.edu\.gy$", re.IGNORECASE)


def school_type_from_email(email: Optional[str]) -> Optional[Dict[str, Any]]:
    """Type, school code and label from a head teacher email, or None."""
    if not email:
        return None
    match = HM_EMAIL_PATTERN.match(email.strip())
    if not match:
        return None
    short_code, school_code = match.group(1).lower(), match.group(2)
    school_type = SCHOOL_TYPE_CODES.get(short_code)
    if school_type is None:
        return None
    return {
        "type": school_type,
        "code": school_code,
        "label": SCHOOL_TYPE_LABELS[school_type],
        "short_code": short_code,
    }


def parse_school_type(value: Any) -> SchoolType:
    if isinstance(value, SchoolType):
        return value
    try:
        return SchoolType(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown school type '{value}'. Use one of: nursery, primary, secondary."
        )


def scoring_model_for(school_type: Any) -> ScoringModel:
    if parse_school_type(school_type) == SchoolType.SECONDARY:
        return ScoringModel.TAPS
    return ScoringModel.STANDARD

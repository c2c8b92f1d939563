"""
inputs.py — Raw form-input helpers shared by both category scorers.

Form layers deliver numbers as numbers or numeric strings, and checkboxes
as booleans or "true"/"false" strings. Blank strings and None mean the
head teacher has not answered yet.
"""

from typing import Any, Dict, Iterable, List, Mapping

import numpy as np

from core.errors import OutOfRangeMetric

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


def is_present(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def as_number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool):
        raise OutOfRangeMetric(value, key, "Expected a number, got a boolean.")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise OutOfRangeMetric(value, key, "Expected a number.")
    if np.isnan(v) or np.isinf(v):
        raise OutOfRangeMetric(value, key, "Value is not finite.")
    return v


def as_flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUTHY:
            return True
        if text in FALSY or not text:
            return False
        raise OutOfRangeMetric(value, key, "Expected a yes/no value.")
    return bool(value)


def missing_fields(data: Mapping[str, Any], required: Iterable[str]) -> List[str]:
    return [key for key in required if not is_present(data, key)]


def as_section(raw: Any, category: str) -> Dict[str, Any]:
    """Copy one category's answers. None means the section is untouched."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Inputs for '{category}' must be an object.")
    return dict(raw)

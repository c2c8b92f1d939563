"""
banding.py — Metric bander.

Converts a raw metric (percentage, count, ratio or select option) into
points using an ordered band table.

Band convention: by default every band is inclusive of its lower bound and
exclusive of its upper bound, except the last band which also includes its
upper bound. Lower-is-better tables are built with closed="upper", the mirror
image: each band includes its upper bound and only the first band includes
its lower bound, so the first band may be a single point.
Tables are validated once, when they are constructed.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from core.errors import MalformedBandTable, OutOfRangeMetric


@dataclass(frozen=True)
class Band:
    lower_bound: float
    upper_bound: float
    points: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lower_bound": self.lower_bound,
            "upper_bound": None if np.isinf(self.upper_bound) else self.upper_bound,
            "points": self.points,
        }


@dataclass(frozen=True)
class BandTable:
    """Ascending, contiguous bands covering [domain_min, domain_max]."""

    name: str
    bands: Tuple[Band, ...]
    domain_min: float
    domain_max: float
    closed: str = "lower"

    def __post_init__(self):
        object.__setattr__(self, "bands", tuple(self.bands))
        _validate_band_table(self)

    @property
    def max_points(self) -> int:
        return max(b.points for b in self.bands)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "domain_min": self.domain_min,
            "domain_max": None if np.isinf(self.domain_max) else self.domain_max,
            "closed": self.closed,
            "bands": [b.to_dict() for b in self.bands],
        }


@dataclass(frozen=True)
class OptionTable:
    """Points for each allowed value of a select-type metric."""

    name: str
    options: Mapping[str, int]

    def __post_init__(self):
        if not self.options:
            raise MalformedBandTable(f"Option table '{self.name}' has no options.")
        if any(p < 0 for p in self.options.values()):
            raise MalformedBandTable(f"Option table '{self.name}' has negative points.")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def max_points(self) -> int:
        return max(self.options.values())

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "options": dict(self.options)}


def _validate_band_table(table: BandTable) -> None:
    bands = table.bands
    if not bands:
        raise MalformedBandTable(f"Band table '{table.name}' is empty.")
    if table.closed not in ("lower", "upper"):
        raise MalformedBandTable(
            f"Band table '{table.name}' has unknown closed side '{table.closed}'."
        )

    for idx, b in enumerate(bands):
        point_band = table.closed == "upper" and idx == 0 and b.lower_bound == b.upper_bound
        if not (b.lower_bound < b.upper_bound or point_band):
            raise MalformedBandTable(
                f"Band {idx} of '{table.name}' is empty or inverted "
                f"({b.lower_bound}..{b.upper_bound})."
            )
        if b.points < 0:
            raise MalformedBandTable(f"Band {idx} of '{table.name}' has negative points.")

    for idx in range(len(bands) - 1):
        upper = bands[idx].upper_bound
        lower = bands[idx + 1].lower_bound
        if upper < lower:
            raise MalformedBandTable(
                f"Band table '{table.name}' has a gap between {upper} and {lower}."
            )
        if upper > lower:
            raise MalformedBandTable(
                f"Band table '{table.name}' has overlapping bands at {lower}..{upper}."
            )

    if bands[0].lower_bound != table.domain_min:
        raise MalformedBandTable(
            f"Band table '{table.name}' starts at {bands[0].lower_bound}, "
            f"expected {table.domain_min}."
        )
    if bands[-1].upper_bound != table.domain_max:
        raise MalformedBandTable(
            f"Band table '{table.name}' ends at {bands[-1].upper_bound}, "
            f"expected {table.domain_max}."
        )


def make_band_table(
    name: str,
    rows,
    domain_min: float = 0,
    domain_max: float = 100,
    closed: str = "lower",
) -> BandTable:
    """Build a table from (lower_bound, upper_bound, points) rows."""
    return BandTable(
        name=name,
        bands=tuple(Band(float(lo), float(hi), int(pts)) for lo, hi, pts in rows),
        domain_min=float(domain_min),
        domain_max=float(domain_max),
        closed=closed,
    )


def _as_number(value: Any, table_name: str) -> float:
    if isinstance(value, bool):
        raise OutOfRangeMetric(value, table_name, "Booleans are not numeric metrics.")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise OutOfRangeMetric(value, table_name, "Value is not numeric.")
    if np.isnan(v) or np.isinf(v):
        raise OutOfRangeMetric(value, table_name, "Value is not finite.")
    return v


def find_band(value: Any, table: BandTable) -> Band:
    """Return the unique band containing ``value``."""
    v = _as_number(value, table.name)
    last = len(table.bands) - 1
    for idx, b in enumerate(table.bands):
        if table.closed == "upper":
            if b.lower_bound < v <= b.upper_bound or (idx == 0 and v == b.lower_bound):
                return b
        elif b.lower_bound <= v < b.upper_bound or (idx == last and v == b.upper_bound):
            return b
    raise OutOfRangeMetric(value, table.name)


def band(value: Any, table: BandTable) -> int:
    """Points of the band whose range contains ``value``."""
    return find_band(value, table).points


def band_points(value: Any, table: BandTable, max_points: float) -> float:
    """Band ``value`` and scale the result onto a sub-item worth ``max_points``."""
    return band(value, table) * max_points / table.max_points


def option_points(value: Optional[str], table: OptionTable, max_points: float) -> float:
    """Points for a select option, scaled onto ``max_points``."""
    key = str(value).strip().lower() if value is not None else ""
    if key not in table.options:
        raise OutOfRangeMetric(
            value, table.name, f"Allowed options: {', '.join(table.options)}."
        )
    return table.options[key] * max_points / table.max_points

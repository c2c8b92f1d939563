"""
terms.py — Term submission windows.

Each term config is in one of four states, recomputed on every query from
(enabled, start_date, end_date, now):

    disabled        enabled is false, whatever the dates
    before_window   today < start_date
    within_window   start_date <= today <= end_date   (whole days, inclusive)
    after_window    today > end_date

Nothing is stored. Two enabled windows open on the same day is a
configuration error: lookups raise OverlappingTermWindows and the
per-school check fails closed.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import InvalidTermConfig, OverlappingTermWindows
from core.rubrics import TERM_NUMBERS, TermName

logger = logging.getLogger(__name__)

# Term 1 opens the academic year in September.
ACADEMIC_YEAR_START_MONTH = 9


class TermWindowState(str, Enum):
    DISABLED = "disabled"
    BEFORE_WINDOW = "before_window"
    WITHIN_WINDOW = "within_window"
    AFTER_WINDOW = "after_window"


def to_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise InvalidTermConfig(f"'{value}' is not an ISO date.")
    raise InvalidTermConfig(f"Expected a date, got {type(value).__name__}.")


def academic_year_for(day: date) -> str:
    """'2024-2025' for any day from September 2024 to August 2025."""
    start = day.year if day.month >= ACADEMIC_YEAR_START_MONTH else day.year - 1
    return f"{start}-{start + 1}"


def _parse_term(term_number: Any, term_name: Any) -> Tuple[int, TermName]:
    try:
        name = TermName(term_name) if term_name is not None else None
    except ValueError:
        raise InvalidTermConfig(
            f"Unknown term '{term_name}'. Use one of: {', '.join(t.value for t in TermName)}."
        )
    if name is None:
        by_number = {n: t for t, n in TERM_NUMBERS.items()}
        if term_number not in by_number:
            raise InvalidTermConfig(f"Unknown term number {term_number!r}.")
        name = by_number[term_number]
    number = TERM_NUMBERS[name]
    if term_number is not None and term_number != number:
        raise InvalidTermConfig(f"'{name.value}' is term {number}, not {term_number}.")
    return number, name


# ── Term configs ────────────────────────────────────────────────────

@dataclass(frozen=True)
class TermSubmissionConfig:
    """A window with concrete dates."""

    term_number: int
    term_name: TermName
    start_date: date
    end_date: date
    enabled: bool = True
    academic_year: Optional[str] = None

    def __post_init__(self):
        number, name = _parse_term(self.term_number, self.term_name)
        object.__setattr__(self, "term_number", number)
        object.__setattr__(self, "term_name", name)
        object.__setattr__(self, "start_date", to_date(self.start_date))
        object.__setattr__(self, "end_date", to_date(self.end_date))
        if self.end_date < self.start_date:
            raise InvalidTermConfig(
                f"{self.term_name.value}: end date {self.end_date} is before start date {self.start_date}."
            )
        if self.academic_year is None:
            object.__setattr__(self, "academic_year", academic_year_for(self.start_date))

    def resolve(self, now: Union[date, datetime]) -> "TermSubmissionConfig":
        return self

    def occurrences(self, years: Iterable[int] = ()) -> List["TermSubmissionConfig"]:
        return [self]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_number": self.term_number,
            "term_name": self.term_name.value,
            "academic_year": self.academic_year,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "enabled": self.enabled,
        }


def _day_in(year: int, month: int, day: int) -> date:
    # Feb 29 falls back to Feb 28 outside leap years
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


@dataclass(frozen=True)
class RecurringTermConfig:
    """A window given as month/day pairs that repeats every year.

    An end before the start (e.g. 15 Dec to 10 Jan) wraps into the next
    calendar year.
    """

    term_number: int
    term_name: TermName
    start_month: int
    start_day: int
    end_month: int
    end_day: int
    enabled: bool = True

    def __post_init__(self):
        number, name = _parse_term(self.term_number, self.term_name)
        object.__setattr__(self, "term_number", number)
        object.__setattr__(self, "term_name", name)
        for label, month, day in (("start", self.start_month, self.start_day),
                                  ("end", self.end_month, self.end_day)):
            if not isinstance(month, int) or not 1 <= month <= 12:
                raise InvalidTermConfig(f"{name.value}: {label} month {month!r} is not 1-12.")
            # 2024 is a leap year, so Feb 29 is accepted
            if not isinstance(day, int) or not 1 <= day <= calendar.monthrange(2024, month)[1]:
                raise InvalidTermConfig(f"{name.value}: {label} day {day!r} does not exist in month {month}.")

    @property
    def wraps_year_end(self) -> bool:
        return (self.end_month, self.end_day) < (self.start_month, self.start_day)

    def for_start_year(self, year: int) -> TermSubmissionConfig:
        end_year = year + 1 if self.wraps_year_end else year
        return TermSubmissionConfig(
            term_number=self.term_number,
            term_name=self.term_name,
            start_date=_day_in(year, self.start_month, self.start_day),
            end_date=_day_in(end_year, self.end_month, self.end_day),
            enabled=self.enabled,
        )

    def resolve(self, now: Union[date, datetime]) -> TermSubmissionConfig:
        """The occurrence that contains ``now``, else this calendar year's."""
        today = to_date(now)
        for year in (today.year - 1, today.year):
            window = self.for_start_year(year)
            if window.start_date <= today <= window.end_date:
                return window
        return self.for_start_year(today.year)

    def occurrences(self, years: Iterable[int] = ()) -> List[TermSubmissionConfig]:
        """Concrete windows starting in each of ``years``."""
        return [self.for_start_year(y) for y in years]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_number": self.term_number,
            "term_name": self.term_name.value,
            "start_month": self.start_month,
            "start_day": self.start_day,
            "end_month": self.end_month,
            "end_day": self.end_day,
            "enabled": self.enabled,
        }


AnyTermConfig = Union[TermSubmissionConfig, RecurringTermConfig]


def term_config_from_dict(data: Mapping[str, Any]) -> AnyTermConfig:
    """Build a term config from a JSON object with dates or month/day pairs."""
    if not isinstance(data, Mapping):
        raise InvalidTermConfig("Each term config must be an object.")
    enabled = data.get("enabled", data.get("is_enabled", True))
    if not isinstance(enabled, bool):
        raise InvalidTermConfig("'enabled' must be true or false.")
    if "start_date" in data or "end_date" in data:
        return TermSubmissionConfig(
            term_number=data.get("term_number"),
            term_name=data.get("term_name"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            enabled=enabled,
            academic_year=data.get("academic_year"),
        )
    if "start_month" in data:
        return RecurringTermConfig(
            term_number=data.get("term_number"),
            term_name=data.get("term_name"),
            start_month=data.get("start_month"),
            start_day=data.get("start_day"),
            end_month=data.get("end_month"),
            end_day=data.get("end_day"),
            enabled=enabled,
        )
    raise InvalidTermConfig("Term config needs start_date/end_date or start_month/start_day.")


# ── State machine ───────────────────────────────────────────────────

def submission_state(term: AnyTermConfig, now: Union[date, datetime]) -> TermWindowState:
    if not term.enabled:
        return TermWindowState.DISABLED
    today = to_date(now)
    window = term.resolve(today)
    if today < window.start_date:
        return TermWindowState.BEFORE_WINDOW
    if today > window.end_date:
        return TermWindowState.AFTER_WINDOW
    return TermWindowState.WITHIN_WINDOW


def is_submission_open(term: AnyTermConfig, now: Union[date, datetime]) -> bool:
    return submission_state(term, now) == TermWindowState.WITHIN_WINDOW


def days_remaining(term: AnyTermConfig, now: Union[date, datetime]) -> int:
    """Whole days left after today; 0 on the last day or once closed."""
    today = to_date(now)
    return max(0, (term.resolve(today).end_date - today).days)


@dataclass(frozen=True)
class TermWindow:
    """Read-only view of the window open right now."""

    term_number: int
    term_name: TermName
    academic_year: str
    start_date: date
    end_date: date
    days_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_number": self.term_number,
            "term_name": self.term_name.value,
            "academic_year": self.academic_year,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days_remaining": self.days_remaining,
        }


def _window_for(term: AnyTermConfig, today: date) -> TermWindow:
    resolved = term.resolve(today)
    return TermWindow(
        term_number=resolved.term_number,
        term_name=resolved.term_name,
        academic_year=resolved.academic_year,
        start_date=resolved.start_date,
        end_date=resolved.end_date,
        days_remaining=days_remaining(resolved, today),
    )


class TermWindowManager:
    """Answers "is submission open" over a set of administrator term configs."""

    def __init__(self, terms: Iterable[AnyTermConfig]):
        self.terms: Tuple[AnyTermConfig, ...] = tuple(terms)

    @classmethod
    def from_dicts(cls, rows: Iterable[Mapping[str, Any]]) -> "TermWindowManager":
        return cls(term_config_from_dict(r) for r in rows)

    def statuses(self, now: Union[date, datetime]) -> List[Dict[str, Any]]:
        today = to_date(now)
        out = []
        for term in self.terms:
            resolved = term.resolve(today)
            state = submission_state(term, today)
            out.append({
                **resolved.to_dict(),
                "state": state.value,
                "is_open": state == TermWindowState.WITHIN_WINDOW,
                "days_remaining": days_remaining(resolved, today)
                if state == TermWindowState.WITHIN_WINDOW else None,
            })
        return out

    def get_active_term_window(self, now: Union[date, datetime]) -> Optional[TermWindow]:
        """The unique open window, or None. Raises OverlappingTermWindows."""
        today = to_date(now)
        open_terms = [t for t in self.terms if is_submission_open(t, today)]
        if len(open_terms) > 1:
            raise OverlappingTermWindows(t.term_name.value for t in open_terms)
        if not open_terms:
            return None
        return _window_for(open_terms[0], today)

    def is_open_for_school(self, school_id: str, now: Union[date, datetime]) -> bool:
        """Whether school ``school_id`` may create or submit a report now.

        Windows are system-wide. Overlapping windows report closed.
        """
        try:
            return self.get_active_term_window(now) is not None
        except OverlappingTermWindows as exc:
            logger.error(
                "Submission closed for school %s: term configuration needs an administrator. %s",
                school_id, exc,
            )
            return False

    def find_overlapping_terms(self) -> List[Tuple[str, str]]:
        """Pairs of enabled terms whose windows can be open on the same day."""
        enabled = [t for t in self.terms if t.enabled]
        # recurring windows are compared in every year a dated window touches
        anchor_years = {t.start_date.year for t in enabled if isinstance(t, TermSubmissionConfig)} or {2024}
        years = range(min(anchor_years) - 1, max(anchor_years) + 2)
        pairs = []
        for i, a in enumerate(enabled):
            for b in enabled[i + 1:]:
                if any(
                    x.start_date <= y.end_date and y.start_date <= x.end_date
                    for x in a.occurrences(years)
                    for y in b.occurrences(years)
                ):
                    pairs.append((a.term_name.value, b.term_name.value))
        return pairs

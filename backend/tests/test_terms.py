"""
Tests for core/terms.py — term submission windows.
"""

import json
import logging
import os
import sys
from datetime import date, datetime

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.errors import InvalidTermConfig, OverlappingTermWindows
from core.rubrics import TermName
from core.terms import (
    RecurringTermConfig,
    TermSubmissionConfig,
    TermWindowManager,
    TermWindowState,
    academic_year_for,
    days_remaining,
    is_submission_open,
    submission_state,
    term_config_from_dict,
)

SAMPLE_DIR = os.path.join(os.path.dirname(__file__), "..", "sample_data")


@pytest.fixture
def term_rows():
    with open(os.path.join(SAMPLE_DIR, "term_windows.json")) as f:
        return json.load(f)


@pytest.fixture
def manager(term_rows):
    return TermWindowManager.from_dicts(term_rows)


def _term(start, end, enabled=True, number=2):
    return TermSubmissionConfig(number, None, start, end, enabled=enabled)


class TestSubmissionState:
    """Four states, recomputed from the clock."""

    def test_states(self):
        term = _term("2025-03-15", "2025-04-04")
        assert submission_state(term, date(2025, 3, 14)) == TermWindowState.BEFORE_WINDOW
        assert submission_state(term, date(2025, 3, 20)) == TermWindowState.WITHIN_WINDOW
        assert submission_state(term, date(2025, 4, 5)) == TermWindowState.AFTER_WINDOW

    def test_bounds_inclusive(self):
        term = _term("2025-03-15", "2025-04-04")
        assert is_submission_open(term, date(2025, 3, 15))
        assert is_submission_open(term, datetime(2025, 4, 4, 23, 59, 59))

    def test_disabled_overrides_dates(self):
        term = _term("2025-03-15", "2025-04-04", enabled=False)
        assert submission_state(term, date(2025, 3, 20)) == TermWindowState.DISABLED
        assert not is_submission_open(term, date(2025, 3, 20))

    def test_single_day_window(self):
        term = _term("2025-03-15", "2025-03-15")
        assert is_submission_open(term, date(2025, 3, 15))
        assert days_remaining(term, date(2025, 3, 15)) == 0

    def test_days_remaining(self):
        term = _term("2025-03-15", "2025-04-04")
        assert days_remaining(term, date(2025, 4, 1)) == 3
        assert days_remaining(term, date(2025, 5, 1)) == 0


class TestTermConfig:
    """Config validation."""

    def test_end_before_start(self):
        with pytest.raises(InvalidTermConfig, match="before start"):
            _term("2025-04-04", "2025-03-15")

    def test_bad_date_string(self):
        with pytest.raises(InvalidTermConfig):
            _term("2025-13-01", "2025-04-04")

    def test_unknown_term_name(self):
        with pytest.raises(InvalidTermConfig, match="Unknown term"):
            TermSubmissionConfig(None, "Fourth Term", "2025-01-01", "2025-01-10")

    def test_number_and_name_disagree(self):
        with pytest.raises(InvalidTermConfig):
            TermSubmissionConfig(1, "Third Term", "2025-01-01", "2025-01-10")

    def test_name_from_number(self):
        term = TermSubmissionConfig(3, None, "2025-07-01", "2025-07-18")
        assert term.term_name == TermName.THIRD_TERM

    def test_academic_year_derived(self):
        assert _term("2025-03-15", "2025-04-04").academic_year == "2024-2025"
        assert academic_year_for(date(2025, 9, 1)) == "2025-2026"
        assert academic_year_for(date(2025, 8, 31)) == "2024-2025"

    def test_from_dict_accepts_is_enabled(self):
        term = term_config_from_dict({
            "term_number": 1, "start_date": "2024-12-01", "end_date": "2024-12-20", "is_enabled": False,
        })
        assert term.enabled is False

    def test_from_dict_requires_dates(self):
        with pytest.raises(InvalidTermConfig):
            term_config_from_dict({"term_number": 1})

    def test_from_dict_rejects_non_bool_enabled(self):
        with pytest.raises(InvalidTermConfig):
            term_config_from_dict({
                "term_number": 1, "start_date": "2024-12-01", "end_date": "2024-12-20", "enabled": "yes",
            })

    def test_recurring_invalid_day(self):
        with pytest.raises(InvalidTermConfig, match="does not exist"):
            RecurringTermConfig(1, None, 4, 31, 5, 10)

    def test_recurring_invalid_month(self):
        with pytest.raises(InvalidTermConfig):
            RecurringTermConfig(1, None, 13, 1, 5, 10)


class TestRecurringTerms:
    """Month/day windows that repeat each year."""

    def test_wraps_year_end(self):
        term = RecurringTermConfig(1, None, 12, 15, 1, 10)
        assert term.wraps_year_end
        assert is_submission_open(term, date(2024, 12, 20))
        assert is_submission_open(term, date(2025, 1, 5))
        assert is_submission_open(term, date(2025, 1, 10))
        assert not is_submission_open(term, date(2025, 1, 11))
        assert submission_state(term, date(2025, 6, 1)) == TermWindowState.BEFORE_WINDOW

    def test_wrapped_occurrence_dates(self):
        window = RecurringTermConfig(1, None, 12, 15, 1, 10).resolve(date(2025, 1, 5))
        assert window.start_date == date(2024, 12, 15)
        assert window.end_date == date(2025, 1, 10)
        assert window.academic_year == "2024-2025"

    def test_leap_day_clamped(self):
        term = RecurringTermConfig(2, None, 2, 1, 2, 29)
        assert term.resolve(date(2025, 2, 10)).end_date == date(2025, 2, 28)
        assert term.resolve(date(2024, 2, 10)).end_date == date(2024, 2, 29)


class TestTermWindowManager:
    """Active-window lookup across every configured term."""

    def test_active_window(self, manager):
        window = manager.get_active_term_window(date(2025, 3, 20))
        assert window.term_name == TermName.SECOND_TERM
        assert window.academic_year == "2024-2025"
        assert window.days_remaining == 15

    def test_no_active_window(self, manager):
        assert manager.get_active_term_window(date(2025, 5, 1)) is None

    def test_statuses(self, manager):
        rows = manager.statuses(date(2025, 3, 20))
        assert [r["state"] for r in rows] == ["after_window", "within_window", "before_window"]
        assert [r["days_remaining"] for r in rows] == [None, 15, None]

    def test_overlap_raises(self, term_rows):
        term_rows[2]["start_date"] = "2025-04-01"
        manager = TermWindowManager.from_dicts(term_rows)
        with pytest.raises(OverlappingTermWindows) as exc:
            manager.get_active_term_window(date(2025, 4, 2))
        assert exc.value.terms == ["Second Term", "Third Term"]
        # a day only one window covers still resolves
        assert manager.get_active_term_window(date(2025, 3, 20)).term_name == TermName.SECOND_TERM

    def test_school_check_fails_closed(self, term_rows, caplog):
        term_rows[2]["start_date"] = "2025-04-01"
        manager = TermWindowManager.from_dicts(term_rows)
        with caplog.at_level(logging.ERROR, logger="core.terms"):
            assert manager.is_open_for_school("SCH-001", date(2025, 4, 2)) is False
        assert "SCH-001" in caplog.text

    def test_school_check_open(self, manager):
        assert manager.is_open_for_school("SCH-001", date(2024, 12, 1)) is True
        assert manager.is_open_for_school("SCH-001", date(2024, 11, 30)) is False

    def test_disabled_overlap_ignored(self, term_rows):
        term_rows[2]["start_date"] = "2025-04-01"
        term_rows[2]["enabled"] = False
        manager = TermWindowManager.from_dicts(term_rows)
        assert manager.find_overlapping_terms() == []
        assert manager.get_active_term_window(date(2025, 4, 2)).term_name == TermName.SECOND_TERM

    def test_find_overlapping_terms(self, term_rows):
        assert TermWindowManager.from_dicts(term_rows).find_overlapping_terms() == []
        term_rows[2]["start_date"] = "2025-04-04"
        pairs = TermWindowManager.from_dicts(term_rows).find_overlapping_terms()
        assert pairs == [("Second Term", "Third Term")]

    def test_recurring_overlap_detected(self):
        manager = TermWindowManager([
            RecurringTermConfig(1, None, 12, 15, 1, 10),
            RecurringTermConfig(2, None, 1, 5, 3, 31),
        ])
        assert manager.find_overlapping_terms() == [("First Term", "Second Term")]

    def test_window_to_dict(self, manager):
        data = manager.get_active_term_window(date(2025, 7, 1)).to_dict()
        assert data == {
            "term_number": 3,
            "term_name": "Third Term",
            "academic_year": "2024-2025",
            "start_date": "2025-07-01",
            "end_date": "2025-07-18",
            "days_remaining": 17,
        }

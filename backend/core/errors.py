"""
errors.py — Error kinds raised by the scoring engine.

Library code raises these; routes translate them into HTTP responses.
Configuration errors are fatal and surface at import / load time.
"""

from typing import Iterable, Optional


class AssessmentError(Exception):
    """Base class for every engine error."""


# ── Configuration errors ────────────────────────────────────────────

class ConfigurationError(AssessmentError):
    """A rubric table or term configuration is unusable."""


class MalformedBandTable(ConfigurationError):
    """A band table is empty, unordered, overlapping or leaves gaps."""


class OverlappingTermWindows(ConfigurationError):
    """More than one enabled term window is open at the same moment."""

    def __init__(self, terms: Iterable[str]):
        self.terms = list(terms)
        super().__init__(
            "Multiple enabled term windows overlap: " + ", ".join(self.terms)
        )


class InvalidTermConfig(ConfigurationError):
    """A term submission config has impossible dates or an unknown term."""


# ── Input errors ────────────────────────────────────────────────────

class OutOfRangeMetric(AssessmentError, ValueError):
    """A raw metric value falls outside every band of its table."""

    def __init__(self, value, table_name: str, detail: Optional[str] = None):
        self.value = value
        self.table_name = table_name
        message = f"Value {value!r} is outside the legal range of '{table_name}'."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class MissingCategoryInput(AssessmentError):
    """Required raw-input fields are absent for a category at submit time."""

    def __init__(self, category: str, fields: Iterable[str]):
        self.category = category
        self.fields = list(fields)
        super().__init__(
            f"Missing required input for '{category}': {', '.join(self.fields)}"
        )


class IncompleteScoreBreakdown(AssessmentError):
    """A breakdown does not cover the model's categories exactly once."""


# ── Report lifecycle errors ─────────────────────────────────────────

class AlreadySubmitted(AssessmentError):
    """A submit was attempted on a report that is already submitted."""

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report '{report_id}' has already been submitted.")


class ReportNotEditable(AssessmentError):
    """The report is not a draft (submitted or expired)."""


class SubmissionWindowClosed(AssessmentError):
    """No term submission window is open."""

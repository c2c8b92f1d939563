"""
Tests for core/school_type.py — school type detection and model selection.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.rubrics import ScoringModel
from core.school_type import SchoolType, parse_school_type, school_type_from_email, scoring_model_for


class TestSchoolTypeFromEmail:
    """Head teacher email pattern hm.{type}{code}@moe.edu.gy."""

    @pytest.mark.parametrize("email,expected", [
        ("hm.nu1023@moe.edu.gy", SchoolType.NURSERY),
        ("hm.pr0042@moe.edu.gy", SchoolType.PRIMARY),
        ("HM.SE7@MOE.EDU.GY", SchoolType.SECONDARY),
    ])
    def test_known_types(self, email, expected):
        assert school_type_from_email(email)["type"] == expected

    def test_code_and_label(self):
        info = school_type_from_email(" hm.pr0042@moe.edu.gy ")
        assert info == {
            "type": SchoolType.PRIMARY,
            "code": "0042",
            "label": "Primary School",
            "short_code": "pr",
        }

    @pytest.mark.parametrize("email", [
        None,
        "",
        "teacher@moe.edu.gy",
        "hm.xx123@moe.edu.gy",
        "hm.pr@moe.edu.gy",
        "hm.pr123@gmail.com",
    ])
    def test_unrecognised(self, email):
        assert school_type_from_email(email) is None


class TestScoringModelFor:
    """Secondary schools use TAPS; the rest use the standard model."""

    def test_secondary_is_taps(self):
        assert scoring_model_for("secondary") == ScoringModel.TAPS
        assert scoring_model_for(SchoolType.SECONDARY) == ScoringModel.TAPS

    @pytest.mark.parametrize("value", ["nursery", "Primary", SchoolType.NURSERY])
    def test_others_standard(self, value):
        assert scoring_model_for(value) == ScoringModel.STANDARD

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown school type"):
            parse_school_type("tertiary")

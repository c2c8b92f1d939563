"""
Tests for core/banding.py — band lookup and table validation.
"""

import os
import random
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.banding import OptionTable, band, band_points, find_band, make_band_table, option_points
from core.errors import MalformedBandTable, OutOfRangeMetric
from core.rubrics import TAPS_COUNT_BANDS, TAPS_PERCENTAGE_BANDS, TAPS_RATIO_BANDS, TAPS_SELECT_OPTIONS


def _contains(table, idx, v):
    b = table.bands[idx]
    if table.closed == "upper":
        return b.lower_bound < v <= b.upper_bound or (idx == 0 and v == b.lower_bound)
    return b.lower_bound <= v < b.upper_bound or (idx == len(table.bands) - 1 and v == b.upper_bound)


@pytest.fixture
def three_bands():
    return make_band_table("THREE", [(0, 50, 1), (50, 80, 2), (80, 100, 3)])


class TestBand:
    """Tests for band lookup."""

    def test_value_inside_middle_band(self, three_bands):
        assert band(75, three_bands) == 2

    def test_lower_bound_is_inclusive(self, three_bands):
        assert band(50, three_bands) == 2
        assert band(80, three_bands) == 3

    def test_just_below_boundary(self, three_bands):
        assert band(49.999, three_bands) == 1

    def test_domain_edges(self, three_bands):
        assert band(0, three_bands) == 1
        assert band(100, three_bands) == 3

    @pytest.mark.parametrize("value", [-0.01, 100.01, -5, 250])
    def test_out_of_range_raises(self, three_bands, value):
        with pytest.raises(OutOfRangeMetric):
            band(value, three_bands)

    @pytest.mark.parametrize("value", [None, "abc", float("nan"), float("inf"), True])
    def test_non_numeric_raises(self, three_bands, value):
        with pytest.raises(OutOfRangeMetric):
            band(value, three_bands)

    def test_numeric_string_accepted(self, three_bands):
        assert band("75", three_bands) == 2

    def test_out_of_range_is_value_error(self, three_bands):
        with pytest.raises(ValueError):
            band(-1, three_bands)

    def test_open_ended_count_table(self):
        sessions = TAPS_COUNT_BANDS["SESSIONS"]
        assert band(7, sessions) == 10
        assert band(10_000, sessions) == 10
        with pytest.raises(OutOfRangeMetric):
            band(-1, sessions)

    def test_ratio_table_lower_is_better(self):
        assert band(0, TAPS_RATIO_BANDS) == 10
        assert band(15, TAPS_RATIO_BANDS) == 10
        assert band(16, TAPS_RATIO_BANDS) == 8
        assert band(33, TAPS_RATIO_BANDS) == 4
        assert band(40, TAPS_RATIO_BANDS) == 2

    @pytest.mark.parametrize("value, points", [(15.5, 8), (20.5, 6), (25.5, 4), (33.5, 2)])
    def test_fractional_ratio_falls_into_worse_band(self, value, points):
        assert band(value, TAPS_RATIO_BANDS) == points

    @pytest.mark.parametrize("value, points", [(0, 10), (0.5, 8), (2, 8), (2.5, 6), (6, 4), (6.5, 2), (100, 2)])
    def test_late_percentage_bands(self, value, points):
        assert band(value, TAPS_PERCENTAGE_BANDS["LATE_PERCENTAGE"]) == points

    @pytest.mark.parametrize("value, points", [(0, 10), (1, 10), (1.5, 8), (3, 8), (5, 6), (10, 4), (10.5, 2)])
    def test_incident_bands(self, value, points):
        assert band(value, TAPS_PERCENTAGE_BANDS["INCIDENTS"]) == points

    def test_increase_accepts_negative_change(self):
        assert band(-3.5, TAPS_PERCENTAGE_BANDS["INCREASE"]) == 2
        assert band(20, TAPS_PERCENTAGE_BANDS["INCREASE"]) == 10


class TestBandTablesAreTotal:
    """Every legal value resolves to exactly one band."""

    @pytest.mark.parametrize("name", sorted(TAPS_PERCENTAGE_BANDS))
    def test_percentage_tables(self, name):
        table = TAPS_PERCENTAGE_BANDS[name]
        rng = random.Random(name)
        values = [rng.uniform(table.domain_min, table.domain_max) for _ in range(200)]
        values += [b.lower_bound for b in table.bands] + [b.upper_bound for b in table.bands]
        for v in values:
            matches = [b for i, b in enumerate(table.bands) if _contains(table, i, v)]
            assert len(matches) == 1
            assert find_band(v, table) is matches[0]

    @pytest.mark.parametrize("name", sorted(TAPS_COUNT_BANDS))
    def test_count_tables(self, name):
        table = TAPS_COUNT_BANDS[name]
        for v in range(0, 50):
            assert band(v, table) in {2, 4, 6, 8, 10}

    def test_points_never_decrease_for_higher_is_better(self):
        table = TAPS_PERCENTAGE_BANDS["PASS_RATE"]
        points = [band(v / 2, table) for v in range(0, 201)]
        assert points == sorted(points)

    def test_points_never_increase_for_lower_is_better(self):
        table = TAPS_PERCENTAGE_BANDS["INCIDENTS"]
        points = [band(v / 2, table) for v in range(0, 201)]
        assert points == sorted(points, reverse=True)


class TestTableValidation:
    """Malformed tables fail when they are built."""

    def test_empty_table(self):
        with pytest.raises(MalformedBandTable):
            make_band_table("EMPTY", [])

    def test_gap_between_bands(self):
        with pytest.raises(MalformedBandTable, match="gap"):
            make_band_table("GAP", [(0, 40, 1), (41, 100, 2)])

    def test_overlapping_bands(self):
        with pytest.raises(MalformedBandTable, match="overlapping"):
            make_band_table("OVERLAP", [(0, 60, 1), (50, 100, 2)])

    def test_descending_bands(self):
        with pytest.raises(MalformedBandTable):
            make_band_table("DESC", [(50, 100, 2), (0, 50, 1)])

    def test_inverted_band(self):
        with pytest.raises(MalformedBandTable):
            make_band_table("INVERTED", [(0, 0, 1), (0, 100, 2)])

    def test_domain_not_covered(self):
        with pytest.raises(MalformedBandTable):
            make_band_table("SHORT", [(0, 50, 1), (50, 90, 2)])
        with pytest.raises(MalformedBandTable):
            make_band_table("LATE_START", [(10, 50, 1), (50, 100, 2)])

    def test_point_band_only_first_in_upper_closed_table(self):
        table = make_band_table("POINT", [(0, 0, 2), (0, 100, 1)], closed="upper")
        assert band(0, table) == 2
        assert band(0.01, table) == 1
        with pytest.raises(MalformedBandTable):
            make_band_table("POINT_LOWER", [(0, 0, 2), (0, 100, 1)])
        with pytest.raises(MalformedBandTable):
            make_band_table("POINT_MIDDLE", [(0, 50, 2), (50, 50, 1), (50, 100, 0)], closed="upper")

    def test_unknown_closed_side(self):
        with pytest.raises(MalformedBandTable, match="closed side"):
            make_band_table("SIDE", [(0, 100, 1)], closed="both")

    def test_negative_points(self):
        with pytest.raises(MalformedBandTable):
            make_band_table("NEG", [(0, 50, -1), (50, 100, 2)])

    def test_empty_option_table(self):
        with pytest.raises(MalformedBandTable):
            OptionTable("NONE", {})


class TestScaledPoints:
    """Band and option points scaled onto a sub-item's weight."""

    def test_band_points_scales_to_weight(self):
        table = TAPS_PERCENTAGE_BANDS["PASS_RATE"]
        assert band_points(85, table, 8) == 8
        assert band_points(70, table, 8) == pytest.approx(6.4)
        assert band_points(10, table, 8) == pytest.approx(1.6)

    def test_option_points(self):
        quality = TAPS_SELECT_OPTIONS["QUALITY"]
        assert option_points("excellent", quality, 10) == 10
        assert option_points(" Good ", quality, 10) == 6

    def test_unknown_option_raises(self):
        with pytest.raises(OutOfRangeMetric, match="Allowed options"):
            option_points("superb", TAPS_SELECT_OPTIONS["QUALITY"], 10)

    def test_to_dict_hides_infinity(self):
        data = TAPS_RATIO_BANDS.to_dict()
        assert data["domain_max"] is None
        assert data["bands"][-1]["upper_bound"] is None
        assert data["closed"] == "upper"

"""
Unit tests for zoom planning and in-process binning.
"""

import random

import numpy as np
import pytest

from ...schemas import BoundsParams
from ..binning import (
    aggregate_points,
    bin_size_for_zoom,
    plan_for_zoom,
    round_half_away_from_zero,
)


def point(lat, lon, date=None):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": {"date": date},
    }


class TestZoomPlan:
    @pytest.mark.parametrize("zoom,size", [(0, 0.1), (5.9, 0.1), (6, 0.05), (7.5, 0.05), (8, 0.02), (9.9, 0.02)])
    def test_bin_sizes(self, zoom, size):
        assert bin_size_for_zoom(zoom) == size

    def test_bins_below_zoom_ten(self):
        plan = plan_for_zoom(9.5)
        assert plan.mode == "bin"
        assert plan.limit == 5000

    def test_points_from_zoom_ten(self):
        plan = plan_for_zoom(10)
        assert plan.mode == "points"
        assert plan.limit == 10000


class TestRounding:
    def test_ties_away_from_zero(self):
        values = np.array([0.5, 1.5, 2.5, -0.5, -2.5, 0.49, -0.49])
        expected = np.array([1, 2, 3, -1, -3, 0, 0])
        assert np.array_equal(round_half_away_from_zero(values), expected)

    def test_tie_on_cell_edge(self):
        bins = aggregate_points([point(0.125, -0.125)], 0.25)
        assert bins[0]["lat_bin"] == 0.25
        assert bins[0]["lon_bin"] == -0.25

    def test_decimal_tie_rounds_away_from_zero(self):
        # 34.05 / 0.1 is 340.49999999999994 in binary floating point
        bins = aggregate_points([point(34.05, -119.35)], 0.1)
        assert bins[0]["lat_bin"] == 34.1
        assert bins[0]["lon_bin"] == -119.4

    @pytest.mark.parametrize("lat,expected", [(36.75, 36.8), (-36.75, -36.8), (0.05, 0.1), (36.74, 36.7)])
    def test_two_decimal_ties(self, lat, expected):
        assert aggregate_points([point(lat, 0.0)], 0.1)[0]["lat_bin"] == expected


class TestAggregatePoints:
    """Tests for the numpy bin aggregation."""

    @pytest.fixture
    def fresno_points(self):
        return [
            point(36.71, -119.41, "2024-03-01"),
            point(36.72, -119.42, "2024-01-15"),
            point(36.69, -119.36, "2024-02-10"),
            point(36.76, -119.40, "2024-05-05"),
        ]

    def test_two_points_share_a_cell(self):
        bins = aggregate_points([point(36.71, -119.41), point(36.72, -119.42)], 0.1)
        assert len(bins) == 1
        assert bins[0]["lat_bin"] == 36.7
        assert bins[0]["lon_bin"] == -119.4
        assert bins[0]["n"] == 2

    def test_known_grouping(self, fresno_points):
        bins = aggregate_points(fresno_points, 0.1)
        assert [(b["lat_bin"], b["lon_bin"], b["n"]) for b in bins] == [
            (36.7, -119.4, 3),
            (36.8, -119.4, 1),
        ]
        assert bins[0]["first_date"] == "2024-01-15"
        assert bins[0]["last_date"] == "2024-03-01"

    def test_deterministic_under_reordering(self, fresno_points):
        expected = aggregate_points(fresno_points, 0.1)
        shuffled = list(fresno_points)
        random.Random(7).shuffle(shuffled)
        assert aggregate_points(shuffled, 0.1) == expected

    def test_equal_counts_ordered_by_cell(self):
        bins = aggregate_points(
            [point(1.0, 2.0), point(-1.0, 2.0), point(1.0, -2.0)], 0.1
        )
        assert [(b["lat_bin"], b["lon_bin"]) for b in bins] == [
            (-1.0, 2.0),
            (1.0, -2.0),
            (1.0, 2.0),
        ]

    def test_bbox_filters_points(self, fresno_points):
        bbox = BoundsParams(min_lon=-119.45, min_lat=36.70, max_lon=-119.38, max_lat=36.80)
        bins = aggregate_points(fresno_points, 0.1, bbox=bbox)
        assert sum(b["n"] for b in bins) == 3

    def test_limit(self, fresno_points):
        bins = aggregate_points(fresno_points, 0.1, limit=1)
        assert len(bins) == 1
        assert bins[0]["n"] == 3

    def test_missing_dates(self):
        bins = aggregate_points([point(10.0, 10.0)], 0.1)
        assert bins[0]["first_date"] is None
        assert bins[0]["last_date"] is None

    def test_empty(self):
        assert aggregate_points([], 0.1) == []

    def test_rejects_non_positive_bin(self):
        with pytest.raises(ValueError):
            aggregate_points([point(1.0, 1.0)], 0)

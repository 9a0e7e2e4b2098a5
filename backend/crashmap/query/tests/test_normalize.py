"""
Unit tests for row normalization.
"""

import pytest

from ...config import FieldMapping
from ..normalize import (
    FlatCoordinateRow,
    NestedCoordinateRow,
    UnlocatedRow,
    bins_to_features,
    decode_row,
    feature_collection,
    property_chains,
    rows_to_features,
    to_float,
)


class TestToFloat:
    @pytest.mark.parametrize("value,expected", [(1, 1.0), (-119.4179, -119.4179), ("36.7783", 36.7783), (" 2.5 ", 2.5)])
    def test_parses(self, value, expected):
        assert to_float(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "inf", "1_0", "-119_4", True, [1.0], {"x": 1}])
    def test_rejects(self, value):
        assert to_float(value) is None


class TestDecodeRow:
    """Tests for coordinate shape detection."""

    def test_flat_numeric_strings(self):
        decoded = decode_row({"latitude": "36.7783", "longitude": "-119.4179"})
        assert isinstance(decoded, FlatCoordinateRow)
        assert decoded.lat == 36.7783
        assert decoded.lon == -119.4179

    def test_nested_pair_is_lon_lat(self):
        decoded = decode_row({"location": {"type": "Point", "coordinates": ["-118.25", 34.05]}})
        assert isinstance(decoded, NestedCoordinateRow)
        assert (decoded.lon, decoded.lat) == (-118.25, 34.05)

    def test_nested_lat_lon_fields(self):
        decoded = decode_row({"location": {"latitude": "34.05", "longitude": "-118.25"}})
        assert isinstance(decoded, NestedCoordinateRow)
        assert (decoded.lon, decoded.lat) == (-118.25, 34.05)

    def test_nested_wins_over_flat(self):
        decoded = decode_row({
            "location": {"coordinates": [-118.25, 34.05]},
            "latitude": 1.0,
            "longitude": 2.0,
        })
        assert isinstance(decoded, NestedCoordinateRow)
        assert decoded.lat == 34.05

    def test_falls_back_to_flat_when_nested_is_broken(self):
        decoded = decode_row({
            "location": {"coordinates": ["x", "y"]},
            "latitude": 1.0,
            "longitude": 2.0,
        })
        assert isinstance(decoded, FlatCoordinateRow)

    def test_unparsable_string_is_unlocated(self):
        assert isinstance(decode_row({"latitude": "abc", "longitude": "-119.4"}), UnlocatedRow)

    def test_missing_coordinates_is_unlocated(self):
        assert isinstance(decode_row({"severity": "Fatal"}), UnlocatedRow)

    def test_configured_raw_columns(self):
        chains = property_chains(FieldMapping(latitude="POINT_Y", longitude="POINT_X"))
        decoded = decode_row({"POINT_Y": "38.5", "POINT_X": "-121.5"}, chains)
        assert isinstance(decoded, FlatCoordinateRow)
        assert (decoded.lon, decoded.lat) == (-121.5, 38.5)


class TestRowsToFeatures:
    """Tests for point feature mapping."""

    def test_keeps_numeric_strings_and_drops_garbage(self):
        features = rows_to_features([
            {"latitude": "36.7783", "longitude": "-119.4179", "severity": "Fatal"},
            {"latitude": "3_6.7", "longitude": "-119.4"},
            {"latitude": "not a number", "longitude": "nope"},
            {"latitude": None, "longitude": None},
        ])
        assert len(features) == 1
        assert features[0]["geometry"] == {"type": "Point", "coordinates": [-119.4179, 36.7783]}

    def test_canonical_properties(self):
        features = rows_to_features([{
            "latitude": 34.0,
            "longitude": -118.0,
            "severity": "Injury",
            "collision_date": "2024-05-01T00:00:00",
            "county": "LOS ANGELES",
            "killed": 0,
        }])
        assert features[0]["type"] == "Feature"
        assert features[0]["properties"] == {
            "severity": "Injury",
            "date": "2024-05-01T00:00:00",
            "county": "LOS ANGELES",
        }

    def test_alternate_field_names(self):
        features = rows_to_features([{
            "latitude": 34.0,
            "longitude": -118.0,
            "crash_date": "2023-12-31",
            "county_name": "Orange",
        }])
        assert features[0]["properties"] == {
            "severity": None,
            "date": "2023-12-31",
            "county": "Orange",
        }

    def test_deterministic(self):
        rows = [{"latitude": "1", "longitude": "2"}, {"latitude": "x"}, {"latitude": 3, "longitude": 4}]
        assert rows_to_features(rows) == rows_to_features(rows)


class TestBinsToFeatures:
    def test_bin_feature(self):
        features = bins_to_features([
            {"lat_bin": "36.7", "lon_bin": -119.4, "n": "3", "first_date": "2024-01-15"},
        ])
        assert features == [{
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-119.4, 36.7]},
            "properties": {"count": 3, "first_date": "2024-01-15", "last_date": None},
        }]

    def test_drops_bins_without_coordinates(self):
        assert bins_to_features([{"lat_bin": None, "lon_bin": 1.0, "n": 4}]) == []

    def test_drops_bins_without_count(self):
        rows = [
            {"lat_bin": 1.0, "lon_bin": 1.0},
            {"lat_bin": 1.0, "lon_bin": 1.0, "n": "many"},
            {"lat_bin": 2.0, "lon_bin": 2.0, "n": 5},
        ]
        features = bins_to_features(rows)
        assert len(features) == 1
        assert features[0]["properties"]["count"] == 5


def test_feature_collection():
    assert feature_collection([]) == {"type": "FeatureCollection", "features": []}

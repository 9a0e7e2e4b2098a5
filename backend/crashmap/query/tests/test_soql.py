"""
Unit tests for Socrata SoQL parameters.
"""

from ...schemas import BoundsParams, CrashFilter
from ..soql import LOCATION_COLUMNS, POINT_COLUMNS, build_soql_params, build_soql_where


BBOX = BoundsParams(min_lon=-118.7, min_lat=33.7, max_lon=-118.1, max_lat=34.3)


def test_empty_filter_has_no_where():
    params = build_soql_params(CrashFilter(), has_location=True)
    assert params == {"$select": LOCATION_COLUMNS, "$limit": "5000"}


def test_within_box_corners():
    where = build_soql_where(CrashFilter(bbox=BBOX), has_location=True)
    assert where == "within_box(location, 34.3, -118.7, 33.7, -118.1)"


def test_flat_bbox_without_location_column():
    params = build_soql_params(CrashFilter(bbox=BBOX, limit=20), has_location=False)
    assert params["$select"] == POINT_COLUMNS
    assert params["$limit"] == "20"
    assert params["$where"] == (
        "latitude between 33.7 and 34.3 and longitude between -118.7 and -118.1"
    )


def test_literals_are_escaped():
    where = build_soql_where(
        CrashFilter(severity=["it's"], county=["St. Mary's"], start="2024-01-01"),
        has_location=True,
    )
    assert "collision_date >= '2024-01-01T00:00:00'" in where
    assert "severity in ('it''s')" in where
    assert "upper(county) in ('ST. MARY''S')" in where

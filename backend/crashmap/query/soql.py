"""
SoQL parameters for Socrata (SODA) resource endpoints.

Socrata has no GROUP BY on rounded expressions we can rely on across
datasets, so only the row-fetch shape is compiled here; binning for this
backend happens in-process (see ``binning.aggregate_points``).
"""

from typing import Dict, List

from ..schemas import CrashFilter
from .sql import clamp_limit, format_number, quote_literal

POINT_COLUMNS = "latitude, longitude, collision_date, severity, county"
LOCATION_COLUMNS = "location, collision_date, severity, county"


def build_soql_where(crash_filter: CrashFilter, has_location: bool) -> str:
    """``$where`` expression, or an empty string when nothing filters."""
    parts: List[str] = []
    if crash_filter.start:
        parts.append(f"collision_date >= {quote_literal(crash_filter.start + 'T00:00:00')}")
    if crash_filter.end:
        parts.append(f"collision_date <= {quote_literal(crash_filter.end + 'T23:59:59')}")
    if crash_filter.severity:
        values = ", ".join(quote_literal(s) for s in crash_filter.severity)
        parts.append(f"severity in ({values})")
    if crash_filter.county:
        values = ", ".join(quote_literal(c.upper()) for c in crash_filter.county)
        parts.append(f"upper(county) in ({values})")
    bbox = crash_filter.bbox
    if bbox:
        if has_location:
            # within_box takes the north-west corner first, then south-east
            parts.append(
                f"within_box(location, {format_number(bbox.max_lat)}, {format_number(bbox.min_lon)}, "
                f"{format_number(bbox.min_lat)}, {format_number(bbox.max_lon)})"
            )
        else:
            parts.append(
                f"latitude between {format_number(bbox.min_lat)} and {format_number(bbox.max_lat)}"
                f" and longitude between {format_number(bbox.min_lon)} and {format_number(bbox.max_lon)}"
            )
    return " AND ".join(parts)


def build_soql_params(crash_filter: CrashFilter, has_location: bool) -> Dict[str, str]:
    """Query string parameters for a row fetch, with the limit already clamped."""
    params = {
        "$select": LOCATION_COLUMNS if has_location else POINT_COLUMNS,
        "$limit": str(clamp_limit(crash_filter.limit)),
    }
    where = build_soql_where(crash_filter, has_location)
    if where:
        params["$where"] = where
    return params

"""
SQL compilation for the CKAN datastore (PostgreSQL dialect).

User-supplied strings only ever reach the query text through
``quote_literal``; configured column names and the resource id only through
``quote_ident``; numbers only through ``format_number``, which refuses
anything that is not a finite int or float.
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from ..config import FieldMapping
from ..schemas import BoundsParams, CrashFilter, DEFAULT_LIMIT, MAX_LIMIT


@dataclass(frozen=True)
class CompiledQuery:
    """Query text plus the row cap it was compiled with."""
    sql: str
    limit: int


def escape_literal(value: str) -> str:
    """Double every single quote."""
    return value.replace("'", "''")


def unescape_literal(value: str) -> str:
    """Inverse of ``escape_literal``."""
    return value.replace("''", "'")


def quote_literal(value: str) -> str:
    return "'" + escape_literal(value) + "'"


def quote_ident(identifier: str) -> str:
    """Double-quote an identifier, doubling embedded double quotes."""
    return '"' + identifier.replace('"', '""') + '"'


def format_number(value) -> str:
    """Render a finite number for interpolation into query text."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    return repr(value)


def clamp_limit(limit: Optional[int]) -> int:
    """Default to 5000 and clamp into [1, 10000]."""
    if limit is None:
        limit = DEFAULT_LIMIT
    return min(max(int(limit), 1), MAX_LIMIT)


def _in_list(values: List[str]) -> str:
    return ", ".join(quote_literal(v) for v in values)


def _bbox_predicate(bbox: BoundsParams, lat_col: str, lon_col: str) -> str:
    return (
        f"{lat_col} BETWEEN {format_number(bbox.min_lat)} AND {format_number(bbox.max_lat)}"
        f" AND {lon_col} BETWEEN {format_number(bbox.min_lon)} AND {format_number(bbox.max_lon)}"
    )


def _date_predicates(crash_filter: CrashFilter, date_col: str) -> List[str]:
    parts = []
    if crash_filter.start:
        parts.append(f"{date_col} >= {quote_literal(crash_filter.start + ' 00:00:00')}")
    if crash_filter.end:
        parts.append(f"{date_col} <= {quote_literal(crash_filter.end + ' 23:59:59')}")
    return parts


def _where(parts: List[str]) -> str:
    return f" WHERE {' AND '.join(parts)}" if parts else ""


def build_where(crash_filter: CrashFilter, fields: FieldMapping) -> str:
    """
    WHERE clause for the row-fetch query, or an empty string.

    County matching is case-insensitive: values are uppercased and compared
    against ``UPPER(county)``.
    """
    date_col = quote_ident(fields.date)
    parts = _date_predicates(crash_filter, date_col)
    if crash_filter.severity:
        parts.append(f"{quote_ident(fields.severity)} IN ({_in_list(crash_filter.severity)})")
    if crash_filter.county:
        counties = [c.upper() for c in crash_filter.county]
        parts.append(f"UPPER({quote_ident(fields.county)}) IN ({_in_list(counties)})")
    if crash_filter.bbox:
        parts.append(
            _bbox_predicate(
                crash_filter.bbox, quote_ident(fields.latitude), quote_ident(fields.longitude)
            )
        )
    return _where(parts)


def build_points_query(
    crash_filter: CrashFilter, resource_id: str, fields: FieldMapping
) -> CompiledQuery:
    """Row-fetch query projecting upstream columns onto canonical names."""
    limit = clamp_limit(crash_filter.limit)
    projection = ", ".join(
        f"{quote_ident(column)} AS {alias}"
        for column, alias in (
            (fields.latitude, "latitude"),
            (fields.longitude, "longitude"),
            (fields.date, "collision_date"),
            (fields.severity, "severity"),
            (fields.county, "county"),
            (fields.killed, "killed"),
        )
    )
    sql = (
        f"SELECT {projection} FROM {quote_ident(resource_id)}"
        f"{build_where(crash_filter, fields)} LIMIT {format_number(limit)}"
    )
    return CompiledQuery(sql=sql, limit=limit)


def build_bin_query(
    crash_filter: CrashFilter, bin_size: float, resource_id: str, fields: FieldMapping
) -> CompiledQuery:
    """
    Spatial-bin aggregation query.

    PostgreSQL's ROUND on numeric rounds half away from zero, so a point at
    36.75 with 0.1 bins lands in the 36.8 cell.

    Raises:
        ValueError: if the filter has no bbox or the bin size is not a
            positive finite number
    """
    if crash_filter.bbox is None:
        raise ValueError("bbox is required for binning")
    if isinstance(bin_size, bool) or not isinstance(bin_size, (int, float)) or not bin_size > 0:
        raise ValueError("bin size must be a positive number")

    limit = clamp_limit(crash_filter.limit)
    step = format_number(float(bin_size))
    lat = quote_ident(fields.latitude)
    lon = quote_ident(fields.longitude)
    date = quote_ident(fields.date)

    parts = [
        f"{lat} IS NOT NULL",
        f"{lon} IS NOT NULL",
        _bbox_predicate(crash_filter.bbox, lat, lon),
    ]
    parts.extend(_date_predicates(crash_filter, date))

    sql = (
        f"SELECT ROUND({lat}::numeric / {step}, 0) * {step} AS lat_bin,"
        f" ROUND({lon}::numeric / {step}, 0) * {step} AS lon_bin,"
        f" COUNT(*) AS n, MIN({date}) AS first_date, MAX({date}) AS last_date"
        f" FROM {quote_ident(resource_id)}{_where(parts)}"
        f" GROUP BY lat_bin, lon_bin"
        f" ORDER BY n DESC, lat_bin, lon_bin"
        f" LIMIT {format_number(limit)}"
    )
    return CompiledQuery(sql=sql, limit=limit)

"""
Spatial binning.

Two things live here:

1. The zoom plan: which query shape, bin size and row cap suit a given map
   zoom level. Coarse bins at low zoom keep the payload proportional to
   viewport area / bin² instead of the number of crashes; from zoom 10 on
   individual points are cheap enough to ship directly.

2. An in-process implementation of the bin aggregation, for upstreams that
   cannot group server-side. It follows the SQL built by
   ``build_bin_query``: cell = round(coord / bin) * bin with ties rounded
   away from zero, count, first and last date per cell, largest cells
   first, ties broken by cell coordinates.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..schemas import BoundsParams, DEFAULT_LIMIT, MAX_LIMIT
from .sql import clamp_limit

MAX_ZOOM = 24.0
POINTS_MIN_ZOOM = 10.0

# Upper zoom bound (exclusive) -> bin size in degrees
ZOOM_BIN_SIZES = (
    (6.0, 0.1),
    (8.0, 0.05),
)
FINEST_BIN = 0.02

# Decimal places kept on bin coordinates to hide float noise (36.7000000001)
BIN_COORD_PRECISION = 10

# Quotients are snapped to this many decimals before rounding, so decimal
# ties such as 34.05 / 0.1 (340.49999999999994) round like SQL numeric
QUOTIENT_PRECISION = 9


@dataclass(frozen=True)
class ViewPlan:
    """Query shape chosen for a zoom level."""
    mode: str
    bin: float
    limit: int


def bin_size_for_zoom(zoom: float) -> float:
    """Bin edge length in degrees for a zoom level."""
    for max_zoom, size in ZOOM_BIN_SIZES:
        if zoom < max_zoom:
            return size
    return FINEST_BIN


def plan_for_zoom(zoom: float) -> ViewPlan:
    """Pick mode, bin size and limit the way the map client does."""
    if zoom < POINTS_MIN_ZOOM:
        return ViewPlan(mode="bin", bin=bin_size_for_zoom(zoom), limit=DEFAULT_LIMIT)
    return ViewPlan(mode="points", bin=FINEST_BIN, limit=MAX_LIMIT)


def round_half_away_from_zero(values: np.ndarray) -> np.ndarray:
    """Round to integers, ties away from zero (numpy's round is half-to-even)."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def aggregate_points(
    features: Sequence[dict],
    bin_size: float,
    bbox: Optional[BoundsParams] = None,
    limit: Optional[int] = None,
) -> List[Dict]:
    """
    Group canonical point features into bin rows.

    Args:
        features: GeoJSON point features with an optional ``date`` property
        bin_size: Bin edge length in degrees, must be positive
        bbox: Optional viewport; points outside it are ignored (edges inclusive)
        limit: Maximum number of bins returned, clamped like the SQL limit

    Returns:
        List of ``{lat_bin, lon_bin, n, first_date, last_date}`` dicts
    """
    if not bin_size > 0:
        raise ValueError("bin size must be positive")
    if not features:
        return []

    coords = np.array(
        [f["geometry"]["coordinates"][:2] for f in features], dtype=float
    ).reshape(-1, 2)
    lon, lat = coords[:, 0], coords[:, 1]

    mask = np.isfinite(lon) & np.isfinite(lat)
    if bbox is not None:
        mask &= (lat >= bbox.min_lat) & (lat <= bbox.max_lat)
        mask &= (lon >= bbox.min_lon) & (lon <= bbox.max_lon)
    kept = np.flatnonzero(mask)
    if kept.size == 0:
        return []

    keys = np.stack(
        [
            round_half_away_from_zero(np.round(lat[kept] / bin_size, QUOTIENT_PRECISION)),
            round_half_away_from_zero(np.round(lon[kept] / bin_size, QUOTIENT_PRECISION)),
        ],
        axis=1,
    ).astype(np.int64)
    cells, inverse, counts = np.unique(
        keys, axis=0, return_inverse=True, return_counts=True
    )
    inverse = inverse.reshape(-1)

    first_dates: List[Optional[str]] = [None] * len(cells)
    last_dates: List[Optional[str]] = [None] * len(cells)
    for feature_index, cell in zip(kept, inverse):
        date = features[feature_index].get("properties", {}).get("date")
        if date is None:
            continue
        date = str(date)
        if first_dates[cell] is None or date < first_dates[cell]:
            first_dates[cell] = date
        if last_dates[cell] is None or date > last_dates[cell]:
            last_dates[cell] = date

    # lexsort: last key is the primary one
    order = np.lexsort((cells[:, 1], cells[:, 0], -counts))
    order = order[:clamp_limit(limit)]

    return [
        {
            "lat_bin": round(float(cells[i, 0]) * bin_size, BIN_COORD_PRECISION),
            "lon_bin": round(float(cells[i, 1]) * bin_size, BIN_COORD_PRECISION),
            "n": int(counts[i]),
            "first_date": first_dates[i],
            "last_date": last_dates[i],
        }
        for i in order
    ]

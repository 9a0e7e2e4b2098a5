"""
Row normalization.

Upstream datasets disagree on both coordinate shape and column names.
Each raw row is first decoded into one of three explicit variants, then
mapped onto a canonical GeoJSON point feature. Rows without two finite
coordinates are dropped, never defaulted.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import FieldMapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyChains:
    """Ordered candidate field names per logical property."""
    severity: Tuple[str, ...]
    date: Tuple[str, ...]
    county: Tuple[str, ...]
    latitude: Tuple[str, ...]
    longitude: Tuple[str, ...]


def _chain(*names: str) -> Tuple[str, ...]:
    # Drop repeats while keeping priority order
    return tuple(dict.fromkeys(names))


def property_chains(fields: FieldMapping) -> PropertyChains:
    """Canonical aliases first, then the configured raw columns and known variants."""
    return PropertyChains(
        severity=_chain("severity", fields.severity, "collision_severity"),
        date=_chain("collision_date", "crash_date", fields.date),
        county=_chain("county", "county_name", fields.county),
        latitude=_chain("latitude", fields.latitude),
        longitude=_chain("longitude", fields.longitude),
    )


DEFAULT_CHAINS = property_chains(FieldMapping())


@dataclass(frozen=True)
class NestedCoordinateRow:
    """Row whose coordinates came from a nested ``location`` value."""
    lon: float
    lat: float
    raw: Mapping[str, Any]


@dataclass(frozen=True)
class FlatCoordinateRow:
    """Row with separate latitude and longitude fields."""
    lon: float
    lat: float
    raw: Mapping[str, Any]


@dataclass(frozen=True)
class UnlocatedRow:
    """Row with no usable coordinates."""
    raw: Mapping[str, Any]


DecodedRow = Union[NestedCoordinateRow, FlatCoordinateRow, UnlocatedRow]


def to_float(value: Any) -> Optional[float]:
    """Parse a number or numeric string; None unless the result is finite."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        # float() also takes Python digit separators ("1_0")
        if "_" in value:
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def first_present(row: Mapping[str, Any], names: Sequence[str]) -> Any:
    """Value of the first candidate field that is present and not null."""
    for name in names:
        value = row.get(name)
        if value is not None:
            return value
    return None


def _nested_coordinates(location: Any) -> Optional[Tuple[float, float]]:
    if not isinstance(location, Mapping):
        return None
    pair = location.get("coordinates")
    if isinstance(pair, (list, tuple)) and len(pair) >= 2:
        # GeoJSON order: [lon, lat]
        lon, lat = to_float(pair[0]), to_float(pair[1])
    else:
        lon, lat = to_float(location.get("longitude")), to_float(location.get("latitude"))
    if lon is None or lat is None:
        return None
    return lon, lat


def decode_row(row: Mapping[str, Any], chains: PropertyChains = DEFAULT_CHAINS) -> DecodedRow:
    """Classify a raw row by where its coordinates live."""
    nested = _nested_coordinates(row.get("location"))
    if nested is not None:
        return NestedCoordinateRow(lon=nested[0], lat=nested[1], raw=row)

    lon = to_float(first_present(row, chains.longitude))
    lat = to_float(first_present(row, chains.latitude))
    if lon is not None and lat is not None:
        return FlatCoordinateRow(lon=lon, lat=lat, raw=row)
    return UnlocatedRow(raw=row)


def point_feature(lon: float, lat: float, properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": properties,
    }


def feature_collection(features: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": features}


def rows_to_features(
    rows: Iterable[Mapping[str, Any]], chains: PropertyChains = DEFAULT_CHAINS
) -> List[Dict[str, Any]]:
    """Map raw crash rows to point features, skipping rows without coordinates."""
    features = []
    dropped = 0
    for row in rows:
        decoded = decode_row(row, chains)
        if isinstance(decoded, UnlocatedRow):
            dropped += 1
            continue
        features.append(
            point_feature(
                decoded.lon,
                decoded.lat,
                {
                    "severity": first_present(row, chains.severity),
                    "date": first_present(row, chains.date),
                    "county": first_present(row, chains.county),
                },
            )
        )
    if dropped:
        logger.debug("Dropped %d of %d rows without coordinates", dropped, dropped + len(features))
    return features


def bins_to_features(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Map bin rows to point features at the bin centers."""
    features = []
    for row in rows:
        lon = to_float(row.get("lon_bin"))
        lat = to_float(row.get("lat_bin"))
        if lon is None or lat is None:
            continue
        count = to_float(row.get("n"))
        if count is None:
            continue
        features.append(
            point_feature(
                lon,
                lat,
                {
                    "count": int(count),
                    "first_date": row.get("first_date"),
                    "last_date": row.get("last_date"),
                },
            )
        )
    return features

"""
Filter validation.

Turns raw, untyped query parameters into a ``CrashFilter``. Every violated
constraint is collected so callers can show the complete list instead of
fixing one field at a time.
"""

import math
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..errors import FilterValidationError
from ..schemas import CrashFilter, FilterIssue
from .binning import MAX_ZOOM, plan_for_zoom

BBOX_KEYS = ("min_lon", "min_lat", "max_lon", "max_lat")
SCALAR_PARAMS = ("start", "end", "limit", "mode", "bin")
LIST_PARAMS = ("severity", "county")


def collect_query_params(query_params) -> Dict[str, Any]:
    """
    Pull filter parameters out of a multi-valued query mapping.

    Works with anything exposing ``get`` and ``getlist`` (Starlette's
    ``QueryParams``, werkzeug's ``MultiDict``). Empty values count as absent.
    """
    raw: Dict[str, Any] = {}
    for name in ("bbox", "zoom") + SCALAR_PARAMS:
        value = query_params.get(name)
        if value not in (None, ""):
            raw[name] = value
    for name in LIST_PARAMS:
        values = [v for v in query_params.getlist(name) if v != ""]
        if values:
            raw[name] = values
    return raw


def parse_bbox(value: Any) -> Dict[str, Any]:
    """
    Split a ``minLon,minLat,maxLon,maxLat`` string into named components.

    Components are left as strings; numeric coercion and range checks
    happen in ``BoundsParams``. A mapping is passed through unchanged and a
    4-item sequence is zipped with the component names.
    """
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        raise ValueError("bbox must be minLon,minLat,maxLon,maxLat")
    if len(parts) != 4:
        raise ValueError("bbox must have exactly 4 comma-separated numbers")
    return dict(zip(BBOX_KEYS, parts))


def _parse_zoom(value: Any) -> float:
    zoom = float(value)
    if not math.isfinite(zoom) or zoom < 0 or zoom > MAX_ZOOM:
        raise ValueError(f"zoom must be between 0 and {MAX_ZOOM}")
    return zoom


def _issue_field(loc) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def _issue_message(error: dict) -> str:
    # pydantic prefixes messages raised from our own validators
    return error["msg"].removeprefix("Value error, ")


def validate_filter(params: Mapping[str, Any]) -> CrashFilter:
    """
    Validate raw parameters into a ``CrashFilter``.

    Raises:
        FilterValidationError: with one issue per violated constraint.
    """
    issues: List[FilterIssue] = []
    data: Dict[str, Any] = {}

    for name in SCALAR_PARAMS + LIST_PARAMS:
        if params.get(name) is not None:
            data[name] = params[name]

    if params.get("bbox") is not None:
        try:
            data["bbox"] = parse_bbox(params["bbox"])
        except ValueError as e:
            issues.append(FilterIssue(field="bbox", message=str(e)))

    zoom: Optional[float] = None
    if params.get("zoom") is not None:
        try:
            zoom = _parse_zoom(params["zoom"])
        except (TypeError, ValueError) as e:
            message = str(e) if "zoom" in str(e) else "zoom must be a number"
            issues.append(FilterIssue(field="zoom", message=message))

    if zoom is not None:
        # Explicit mode, bin and limit always win over the zoom plan
        plan = plan_for_zoom(zoom)
        data.setdefault("mode", plan.mode)
        if data["mode"] == "bin":
            data.setdefault("bin", plan.bin)
        data.setdefault("limit", plan.limit)

    try:
        crash_filter = CrashFilter.model_validate(data)
    except ValidationError as e:
        issues.extend(
            FilterIssue(field=_issue_field(err["loc"]), message=_issue_message(err))
            for err in e.errors()
        )
        crash_filter = None

    if issues:
        raise FilterValidationError(issues)
    return crash_filter

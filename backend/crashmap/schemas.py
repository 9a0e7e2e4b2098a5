"""
Pydantic schemas for filter validation and API responses.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

MAX_LIMIT = 10000
DEFAULT_LIMIT = 5000
MAX_BIN = 0.25
MAX_SEVERITIES = 10
MAX_COUNTIES = 20

# ASCII digits only; \d would also accept other Unicode digits
DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"


# --- Filter input ---

class BoundsParams(BaseModel):
    """Geographic bounding box of the current viewport."""
    min_lon: float = Field(ge=-180, le=180, allow_inf_nan=False)
    min_lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    max_lon: float = Field(ge=-180, le=180, allow_inf_nan=False)
    max_lat: float = Field(ge=-90, le=90, allow_inf_nan=False)

    @field_validator('max_lon')
    @classmethod
    def validate_lon_range(cls, v, info: ValidationInfo):
        if 'min_lon' in info.data and v <= info.data['min_lon']:
            raise ValueError("max_lon must be greater than min_lon")
        return v

    @field_validator('max_lat')
    @classmethod
    def validate_lat_range(cls, v, info: ValidationInfo):
        if 'min_lat' in info.data and v <= info.data['min_lat']:
            raise ValueError("max_lat must be greater than min_lat")
        return v


class CrashFilter(BaseModel):
    """
    A validated crash query.

    Dates are only checked against the YYYY-MM-DD pattern, so a
    well-formed but impossible day such as 2025-02-30 is accepted.
    """
    bbox: Optional[BoundsParams] = None
    start: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    end: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    severity: Optional[List[str]] = Field(default=None, max_length=MAX_SEVERITIES)
    county: Optional[List[str]] = Field(default=None, max_length=MAX_COUNTIES)
    limit: Optional[int] = Field(default=None, gt=0, le=MAX_LIMIT)
    mode: Optional[Literal["points", "bin"]] = None
    bin: Optional[float] = Field(
        default=None, gt=0, le=MAX_BIN, allow_inf_nan=False, validate_default=True
    )

    @field_validator('bin')
    @classmethod
    def validate_bin_for_mode(cls, v, info: ValidationInfo):
        if info.data.get('mode') == "bin" and v is None:
            raise ValueError("bin is required when mode=bin")
        return v


class FilterIssue(BaseModel):
    """One violated constraint on one input field."""
    field: str
    message: str


# --- Responses ---

class PointGeometry(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]


class Feature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: PointGeometry
    properties: dict[str, Any]


class FeatureCollection(BaseModel):
    """GeoJSON body returned by the crash endpoint."""
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Feature]


class InvalidQueryResponse(BaseModel):
    """Validation failure with every violated field."""
    error: str = "Invalid query"
    issues: List[FilterIssue]


class ErrorResponse(BaseModel):
    """Configuration or upstream failure."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    backend: str
    configured: bool

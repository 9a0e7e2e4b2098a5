"""
Query layer: filter validation, query compilation, binning and row
normalization.
"""

from .binning import aggregate_points, plan_for_zoom
from .normalize import bins_to_features, feature_collection, rows_to_features
from .sql import CompiledQuery, build_bin_query, build_points_query, clamp_limit
from .validation import collect_query_params, validate_filter

__all__ = [
    "aggregate_points",
    "plan_for_zoom",
    "bins_to_features",
    "feature_collection",
    "rows_to_features",
    "CompiledQuery",
    "build_bin_query",
    "build_points_query",
    "clamp_limit",
    "collect_query_params",
    "validate_filter",
]

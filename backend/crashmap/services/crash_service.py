"""
Crash query service.

Runs one request end to end: validated filter, compiled query, remote
fetch, canonical GeoJSON. Holds only the immutable upstream configuration,
so a single instance can serve concurrent requests.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import httpx

from ..clients import CkanClient, SocrataClient
from ..clients.ckan import is_truncated
from ..config import DataSourceConfig
from ..errors import FilterValidationError
from ..query.binning import aggregate_points
from ..query.normalize import (
    bins_to_features,
    feature_collection,
    property_chains,
    rows_to_features,
)
from ..query.sql import clamp_limit
from ..query.validation import validate_filter
from ..schemas import CrashFilter, FilterIssue, MAX_LIMIT

logger = logging.getLogger(__name__)


@dataclass
class CrashQueryResponse:
    """FeatureCollection plus the truncation signal for the response headers."""
    geojson: Dict[str, Any]
    truncated: bool
    mode: str


class CrashService:
    """
    Answers crash map queries against the configured upstream.

    With the CKAN backend both query shapes run server-side. Socrata only
    serves rows, so bins are aggregated here from up to ``MAX_LIMIT``
    fetched points.
    """

    def __init__(self, config: DataSourceConfig, http: httpx.AsyncClient):
        self.config = config
        self.chains = property_chains(config.fields)
        if config.backend == "socrata":
            self.client = SocrataClient(config, http)
        else:
            self.client = CkanClient(config, http)

    async def query(self, params: Mapping[str, Any]) -> CrashQueryResponse:
        """Validate raw parameters and run the query."""
        return await self.run(validate_filter(params))

    async def run(self, crash_filter: CrashFilter) -> CrashQueryResponse:
        if crash_filter.mode == "bin":
            if crash_filter.bbox is None:
                raise FilterValidationError(
                    [FilterIssue(field="bbox", message="bbox is required when mode=bin")]
                )
            return await self._binned(crash_filter)
        return await self._points(crash_filter)

    async def _points(self, crash_filter: CrashFilter) -> CrashQueryResponse:
        result = await self.client.fetch_points(crash_filter)
        features = rows_to_features(result.rows, self.chains)
        logger.debug(
            "points query: %d rows, %d features, truncated=%s",
            len(result.rows), len(features), result.truncated,
        )
        return CrashQueryResponse(
            geojson=feature_collection(features),
            truncated=result.truncated,
            mode="points",
        )

    async def _binned(self, crash_filter: CrashFilter) -> CrashQueryResponse:
        if isinstance(self.client, CkanClient):
            result = await self.client.fetch_bins(crash_filter, crash_filter.bin)
            bins, truncated = result.rows, result.truncated
        else:
            # Bins filter on bbox and dates only, like the CKAN bin query
            source = await self.client.fetch_points(
                crash_filter.model_copy(
                    update={"limit": MAX_LIMIT, "severity": None, "county": None}
                )
            )
            points = rows_to_features(source.rows, self.chains)
            bins = aggregate_points(
                points, crash_filter.bin, crash_filter.bbox, crash_filter.limit
            )
            # Counts are partial when the point fetch itself hit the cap
            truncated = source.truncated or is_truncated(len(bins), clamp_limit(crash_filter.limit))

        features = bins_to_features(bins)
        logger.debug("bin query: %d bins, truncated=%s", len(features), truncated)
        return CrashQueryResponse(
            geojson=feature_collection(features),
            truncated=truncated,
            mode="bin",
        )

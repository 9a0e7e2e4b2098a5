"""
Socrata (SODA) resource client.

Only row fetches are supported; bins are aggregated locally by the
service from the fetched points.
"""

import logging
from typing import Any, Dict

import httpx

from ..config import DataSourceConfig
from ..errors import ConfigurationError, MalformedResponseError, UpstreamError
from ..query.soql import build_soql_params
from ..query.sql import clamp_limit
from ..schemas import CrashFilter
from .ckan import MAX_ERROR_BODY, NO_CACHE_HEADERS, QueryResult, is_truncated

logger = logging.getLogger(__name__)


class SocrataClient:
    """Fetches crash rows from ``https://<domain>/resource/<dataset>.json``."""

    def __init__(self, config: DataSourceConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    def _resource_url(self) -> str:
        if not self.config.socrata_dataset_id:
            raise ConfigurationError("SOCRATA_DATASET_ID not configured")
        return (
            f"https://{self.config.socrata_domain}/resource/"
            f"{self.config.socrata_dataset_id}.json"
        )

    async def fetch_points(self, crash_filter: CrashFilter) -> QueryResult:
        url = self._resource_url()
        params = build_soql_params(crash_filter, self.config.socrata_has_location)
        limit = clamp_limit(crash_filter.limit)

        headers: Dict[str, Any] = dict(NO_CACHE_HEADERS)
        if self.config.socrata_app_token:
            headers["X-App-Token"] = self.config.socrata_app_token

        try:
            response = await self.http.get(
                url, params=params, headers=headers, timeout=self.config.timeout
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Socrata request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Socrata error {response.status_code}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY] or None,
            )
        try:
            rows = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Socrata returned a body that is not JSON",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY],
            ) from e
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise MalformedResponseError(
                "Socrata response is not a list of rows",
                status_code=response.status_code,
            )

        truncated = is_truncated(len(rows), limit)
        logger.debug("Socrata returned %d rows (limit %d)", len(rows), limit)
        return QueryResult(rows=rows, truncated=truncated, limit=limit)

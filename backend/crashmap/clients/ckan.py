"""
CKAN datastore SQL client.

Executes compiled queries against ``datastore_search_sql`` and unwraps the
``{success, result: {records}}`` envelope. There are no retries here; a
failed call is reported once and the caller decides what to do.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import httpx

from ..config import DataSourceConfig
from ..errors import ConfigurationError, MalformedResponseError, UpstreamError
from ..query.sql import CompiledQuery, build_bin_query, build_points_query
from ..schemas import CrashFilter

logger = logging.getLogger(__name__)

# Always go to the origin; the API sets its own short cache hint downstream
NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

# Keep error bodies short enough for logs and error responses
MAX_ERROR_BODY = 2000


@dataclass
class QueryResult:
    """Rows returned by the upstream and whether the row cap was hit."""
    rows: List[Dict[str, Any]]
    truncated: bool
    limit: int


def is_truncated(row_count: int, limit: int) -> bool:
    """
    Heuristic: a full page means there may be more.

    A result that exactly exhausts the data at the cap is reported as
    truncated too; callers only use this to suggest narrower filters.
    """
    return row_count >= limit


def parse_envelope(response: httpx.Response) -> List[Dict[str, Any]]:
    """Extract ``result.records`` from a CKAN action response."""
    try:
        payload = response.json()
    except ValueError as e:
        raise MalformedResponseError(
            "CKAN returned a body that is not JSON",
            status_code=response.status_code,
            body=response.text[:MAX_ERROR_BODY],
        ) from e

    if not isinstance(payload, dict) or not isinstance(payload.get("success"), bool):
        raise MalformedResponseError(
            "CKAN response is missing the success flag",
            status_code=response.status_code,
            body=response.text[:MAX_ERROR_BODY],
        )
    if not payload["success"]:
        raise UpstreamError(
            "CKAN query failed",
            status_code=response.status_code,
            body=str(payload.get("error", ""))[:MAX_ERROR_BODY] or None,
        )

    result = payload.get("result") or {}
    records = result.get("records") if isinstance(result, dict) else None
    if records is None:
        return []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise MalformedResponseError(
            "CKAN records are not a list of objects",
            status_code=response.status_code,
        )
    return records


class CkanClient:
    """
    Runs crash queries against a CKAN datastore resource.

    The ``httpx.AsyncClient`` is owned by the caller (one per process);
    this class holds no per-request state, so a cancelled fetch leaves
    nothing behind.
    """

    def __init__(self, config: DataSourceConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    def _resource_id(self) -> str:
        if not self.config.resource_id:
            raise ConfigurationError("CKAN_RESOURCE_ID not configured")
        return self.config.resource_id

    async def execute(self, query: CompiledQuery) -> QueryResult:
        """Send one compiled query and unwrap the records."""
        try:
            response = await self.http.get(
                self.config.ckan_sql_api_base,
                params={"sql": query.sql},
                headers=NO_CACHE_HEADERS,
                timeout=self.config.timeout,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"CKAN request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"CKAN error {response.status_code}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY] or None,
            )

        records = parse_envelope(response)
        truncated = is_truncated(len(records), query.limit)
        logger.debug(
            "CKAN returned %d records (limit %d, truncated=%s)",
            len(records), query.limit, truncated,
        )
        return QueryResult(rows=records, truncated=truncated, limit=query.limit)

    async def fetch_points(self, crash_filter: CrashFilter) -> QueryResult:
        """Fetch individual crash rows."""
        query = build_points_query(crash_filter, self._resource_id(), self.config.fields)
        return await self.execute(query)

    async def fetch_bins(self, crash_filter: CrashFilter, bin_size: float) -> QueryResult:
        """Fetch per-cell crash counts; the filter must carry a bbox."""
        query = build_bin_query(
            crash_filter, bin_size, self._resource_id(), self.config.fields
        )
        return await self.execute(query)

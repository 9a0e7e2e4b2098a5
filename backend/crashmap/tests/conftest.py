"""
Shared fixtures for service and API tests.

The upstream is never contacted: every test gets a ``FakeUpstream`` whose
canned response is served through ``httpx.MockTransport``.
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from ..config import DataSourceConfig


class FakeUpstream:
    """Records requests and replies with a preset response."""

    def __init__(self):
        self.requests = []
        self.response = httpx.Response(200, json={"success": True, "result": {"records": []}})

    def reply(self, status_code=200, **kwargs):
        self.response = httpx.Response(status_code, **kwargs)

    def reply_records(self, records):
        self.reply(json={"success": True, "result": {"records": records}})

    def __call__(self, request):
        self.requests.append(request)
        return self.response


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def data_source():
    return DataSourceConfig(resource_id="crashes-2024")


@pytest.fixture()
async def http(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture()
async def api_client(data_source, http):
    """
    HTTPX async test client wired to the FastAPI app.

    The crash service dependency is overridden so requests reach the fake
    upstream instead of the lifespan-created HTTP pool.
    """
    from ..main import app
    from ..routers.crashes import get_crash_service
    from ..services import CrashService

    app.dependency_overrides[get_crash_service] = lambda: CrashService(data_source, http)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

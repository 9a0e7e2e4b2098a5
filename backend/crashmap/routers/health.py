"""
Health check endpoints.
"""

from fastapi import APIRouter

from ..config import get_settings
from ..schemas import HealthResponse

settings = get_settings()
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Check API health and whether the upstream is configured.

    No request is made to the upstream; a missing resource id is the only
    thing that makes every crash query fail before it starts.
    """
    source = settings.data_source()
    if source.backend == "socrata":
        configured = bool(source.socrata_dataset_id)
    else:
        configured = bool(source.resource_id)

    return HealthResponse(
        status="healthy" if configured else "degraded",
        version=settings.app_version,
        backend=source.backend,
        configured=configured,
    )


@router.get("/health/simple")
async def simple_health():
    """Simple health check without configuration details."""
    return {"status": "ok"}

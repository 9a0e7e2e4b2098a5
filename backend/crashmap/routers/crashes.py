"""
Crash map endpoint.

Thin HTTP layer: collects query parameters, delegates to ``CrashService``
and sets the truncation and cache headers. Error mapping lives in the
exception handlers registered in ``main``.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..query.validation import collect_query_params
from ..schemas import ErrorResponse, FeatureCollection, InvalidQueryResponse
from ..services import CrashService

settings = get_settings()
router = APIRouter()

TRUNCATED_HEADER = "X-Result-Truncated"


def get_crash_service(request: Request) -> CrashService:
    """Dependency: service bound to the process-wide config and HTTP pool."""
    return CrashService(request.app.state.data_source, request.app.state.http)


@router.get(
    "/crashes",
    response_model=FeatureCollection,
    responses={
        400: {"model": InvalidQueryResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def get_crashes(
    request: Request,
    service: CrashService = Depends(get_crash_service),
):
    """
    Crashes inside a viewport as GeoJSON.

    Query parameters:

    - **bbox**: `minLon,minLat,maxLon,maxLat`
    - **start**, **end**: inclusive `YYYY-MM-DD` day bounds
    - **severity**, **county**: repeatable; county matching ignores case
    - **limit**: 1 to 10000 (default 5000)
    - **mode**: `points` or `bin` (`bin` requires **bin** and **bbox**)
    - **bin**: bin size in degrees, up to 0.25
    - **zoom**: map zoom; picks mode, bin and limit when those are omitted

    `X-Result-Truncated: true` means the cap was hit and narrower filters
    may reveal more.
    """
    result = await service.query(collect_query_params(request.query_params))
    return JSONResponse(
        content=result.geojson,
        headers={
            TRUNCATED_HEADER: "true" if result.truncated else "false",
            "Cache-Control": settings.cache_control,
        },
    )

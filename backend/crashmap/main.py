"""
CrashMap - Collision Density Map API

Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import ConfigurationError, FilterValidationError, UpstreamError
from .routers import crashes, health
from .schemas import InvalidQueryResponse

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting CrashMap API...")
    app.state.data_source = settings.data_source()
    if app.state.data_source.backend == "ckan" and not app.state.data_source.resource_id:
        logger.warning("CKAN_RESOURCE_ID is not set; crash queries will fail")
    app.state.http = httpx.AsyncClient(timeout=settings.request_timeout)

    yield

    # Shutdown
    logger.info("Shutting down CrashMap API...")
    await app.state.http.aclose()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="""
    ## CrashMap - Collision Density Map API

    Serves traffic collisions from an open-data portal as GeoJSON for a
    map client.

    ### Query shapes

    - **points**: individual crashes, for high zoom levels
    - **bin**: crash counts per grid cell, for low zoom levels; cell size
      follows the requested bin (degrees)

    Results are capped; `X-Result-Truncated: true` means narrowing the
    viewport or filters may reveal more.
    """,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=[crashes.TRUNCATED_HEADER],
)


# Exception handlers
@app.exception_handler(FilterValidationError)
async def filter_validation_handler(request: Request, exc: FilterValidationError):
    return JSONResponse(
        status_code=400,
        content=InvalidQueryResponse(issues=exc.issues).model_dump(),
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc)},
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.warning(
        "Upstream error (status=%s): %s %s", exc.status_code, exc, exc.body or ""
    )
    return JSONResponse(
        status_code=502,
        content={"error": str(exc)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(crashes.router, prefix="/api", tags=["Crashes"])


# Root endpoint
@app.get("/")
async def root():
    """API root - returns basic info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Collision density map API",
        "docs_url": "/docs",
        "health_url": "/health",
    }

"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.middleware.rate_limit import limiter
from app.infrastructure.session_store import get_session_store
from app.api.v1.routers import grids

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Statistics service: {settings.stats_service_base_url} "
                f"(timeout={settings.stats_service_timeout}s, "
                f"max_attempts={settings.extraction_max_attempts})")
    logger.info(f"Grid config: meters_per_degree={settings.grid_meters_per_degree}, "
                f"fallback_spacing={settings.grid_fallback_spacing_m}m")
    logger.info(f"Rate limit: {settings.rate_limit_requests} extractions/minute "
                f"(enabled={settings.rate_limit_enabled})")

    yield

    # Shutdown: only close the statistics client if a request created it
    from app.infrastructure import stats_client
    logger.info("Shutting down application...")
    if stats_client._stats_client is not None:
        await stats_client._stats_client.close()
    logger.info(f"Shutdown complete ({len(get_session_store())} grid sessions dropped)")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Sample Grid API for Remote-Sensing ROI Analysis

    This API builds sampling grids inside a region of interest and collects
    per-point vegetation index statistics from a remote raster statistics service.

    ## Features

    - **Sample Grid Generation**: Regular lattice at a chosen spacing in meters,
      filtered to the ROI polygon with an even-odd containment test
    - **Point Statistics**: NDVI/EVI means per point from the statistics service,
      rejected if the grid changed while the request was in flight
    - **Table and CSV Export**: Fixed-precision rows, identical on screen and on disk
    - **Rate Limiting**: Protects the statistics service from bursts

    ## Grid Algorithm

    1. Compute the polygon's bounding box
    2. Convert spacing to degrees (111 km per degree, cosine-corrected longitude)
    3. Enumerate lattice rows (latitude) and columns (longitude) inclusively
    4. Keep points inside the polygon
    5. Number kept points 1..N in row-major order
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(grids.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """Service name and version."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Reports the number of live grid sessions and where statistics are
    extracted from; the statistics service itself is not probed.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "grid_sessions": len(get_session_store()),
        "stats_service": settings.stats_service_base_url,
    }

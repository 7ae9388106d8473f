"""
API router for sample grid endpoints.
"""
from fastapi import APIRouter, HTTPException, Path, Request, Response, status
from typing import Annotated

from app.api.dependencies import GridServiceDep
from app.api.v1.models.requests import ExtractStatsRequest, GridRequest
from app.api.v1.models.responses import (
    EstimateResponse,
    GridResponse,
    PointStatsResponse,
    TableResponse,
)
from app.domain.errors import SampleGridError
from app.infrastructure.api_constants import APIConstants
from app.middleware.rate_limit import EXTRACTION_RATE_LIMIT, limiter
from app.services.domain.report_formatter import export_filename


router = APIRouter(
    prefix="/grids",
    tags=["grids"],
)

GridId = Annotated[str, Path(description="Unique identifier for the grid session")]


def _to_http_error(error: SampleGridError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.post(
    "",
    response_model=GridResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a sample grid",
    description="""
    Generate a regular lattice of sample points inside an ROI polygon.

    Spacing is converted to degrees with a local equirectangular
    approximation (111 km per degree of latitude, cosine-corrected for
    longitude). Only lattice points inside the polygon are kept and they are
    numbered 1..N in row-major order. If nothing falls inside, the grid is
    retried once at the configured fallback spacing.
    """,
    responses={
        400: {"description": "Invalid or unsupported geometry, or unusable spacing"},
    }
)
async def create_grid(
    body: GridRequest,
    grid_service: GridServiceDep,
) -> GridResponse:
    """
    Create a grid session for an ROI.

    Args:
        body: ROI geometry and spacing in meters
        grid_service: Grid service (injected dependency)

    Returns:
        GridResponse with the generated points

    Raises:
        HTTPException: If the geometry or spacing is rejected
    """
    try:
        session = grid_service.create_grid(body.geometry, body.spacing_m)
    except SampleGridError as e:
        raise _to_http_error(e)
    return GridResponse.from_session(session)


@router.post(
    "/estimate",
    response_model=EstimateResponse,
    summary="Estimate grid size for a spacing",
    description="""
    Preview how many sample points a spacing will produce before generating
    the grid. Each point stands for a (spacing / 100)^2 hectare square, and
    the estimate is the ROI's geodesic area divided by that, at least 1.
    No grid session is created.
    """,
    responses={
        400: {"description": "Invalid or unsupported geometry, or unusable spacing"},
    }
)
async def estimate_grid(
    body: GridRequest,
    grid_service: GridServiceDep,
) -> EstimateResponse:
    """
    Estimate the number of points a spacing yields for an ROI.

    Args:
        body: ROI geometry and spacing in meters
        grid_service: Grid service (injected dependency)

    Returns:
        EstimateResponse with area, area per point and estimated count

    Raises:
        HTTPException: If the geometry or spacing is rejected
    """
    try:
        estimate = grid_service.estimate_points(body.geometry, body.spacing_m)
    except SampleGridError as e:
        raise _to_http_error(e)
    return EstimateResponse(**estimate.model_dump())


@router.get(
    "/{grid_id}",
    response_model=GridResponse,
    summary="Get a sample grid",
    responses={404: {"description": "Grid not found"}},
)
async def get_grid(grid_id: GridId, grid_service: GridServiceDep) -> GridResponse:
    """
    Get the current state of a grid session.

    Args:
        grid_id: Grid session identifier
        grid_service: Grid service (injected dependency)

    Returns:
        GridResponse with points and statistics count

    Raises:
        HTTPException: If the grid does not exist
    """
    try:
        session = grid_service.get_grid(grid_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return GridResponse.from_session(session)


@router.put(
    "/{grid_id}",
    response_model=GridResponse,
    summary="Regenerate a sample grid",
    description="Replace all points of the grid. Attached statistics are dropped.",
    responses={
        400: {"description": "Invalid or unsupported geometry, or unusable spacing"},
        404: {"description": "Grid not found"},
    }
)
async def regenerate_grid(
    grid_id: GridId,
    body: GridRequest,
    grid_service: GridServiceDep,
) -> GridResponse:
    """
    Regenerate the points of an existing grid.

    Args:
        grid_id: Grid session identifier
        body: New ROI geometry and spacing in meters
        grid_service: Grid service (injected dependency)

    Returns:
        GridResponse with the new points and generation

    Raises:
        HTTPException: If the grid does not exist or the input is rejected
    """
    try:
        session = grid_service.regenerate_grid(grid_id, body.geometry, body.spacing_m)
    except SampleGridError as e:
        raise _to_http_error(e)
    return GridResponse.from_session(session)


@router.post(
    "/{grid_id}/clear",
    response_model=GridResponse,
    summary="Clear grid points and statistics",
    responses={404: {"description": "Grid not found"}},
)
async def clear_grid(grid_id: GridId, grid_service: GridServiceDep) -> GridResponse:
    """
    Remove all points and statistics, keeping the session and its ROI.

    Args:
        grid_id: Grid session identifier
        grid_service: Grid service (injected dependency)

    Returns:
        GridResponse for the now empty grid

    Raises:
        HTTPException: If the grid does not exist
    """
    try:
        session = grid_service.clear_grid(grid_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return GridResponse.from_session(session)


@router.delete(
    "/{grid_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard the ROI and its grid",
    responses={404: {"description": "Grid not found"}},
)
async def discard_grid(grid_id: GridId, grid_service: GridServiceDep) -> Response:
    """
    Discard a grid session together with its ROI.

    Args:
        grid_id: Grid session identifier
        grid_service: Grid service (injected dependency)

    Returns:
        Empty 204 response

    Raises:
        HTTPException: If the grid does not exist
    """
    try:
        grid_service.discard_grid(grid_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{grid_id}/stats",
    response_model=PointStatsResponse,
    summary="Extract point statistics",
    description="""
    Send the grid points and ROI to the statistics service and attach the
    returned NDVI/EVI means to the grid.

    Requires a rendered raster layer. If the grid is regenerated, cleared or
    discarded while the request is in flight, the result is rejected with 409.
    """,
    responses={
        404: {"description": "Grid not found"},
        409: {"description": "No raster layer, empty grid, or grid changed during extraction"},
        429: {"description": "Rate limit exceeded"},
        502: {"description": "Statistics service failure"},
    }
)
@limiter.limit(EXTRACTION_RATE_LIMIT)
async def extract_point_stats(
    request: Request,
    grid_id: GridId,
    body: ExtractStatsRequest,
    grid_service: GridServiceDep,
) -> PointStatsResponse:
    """
    Extract NDVI/EVI statistics for the grid's current points.

    Args:
        request: Incoming request (used by the rate limiter)
        grid_id: Grid session identifier
        body: Active raster layer
        grid_service: Grid service (injected dependency)

    Returns:
        PointStatsResponse with one statistic per point

    Raises:
        HTTPException: If a precondition fails, the statistics service fails,
            or the grid changed while the request was in flight
    """
    try:
        session = await grid_service.extract_point_stats(grid_id, body.raster_layer_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return PointStatsResponse(
        grid_id=session.grid_id,
        generation=session.generation,
        stats=list(session.stats),
    )


@router.get(
    "/{grid_id}/table",
    response_model=TableResponse,
    summary="Point statistics as a table",
    description="Rows use 6 decimals for coordinates and 4 for index means, as in the CSV export.",
    responses={404: {"description": "Grid not found"}},
)
async def get_table(grid_id: GridId, grid_service: GridServiceDep) -> TableResponse:
    """
    Get the extracted statistics as fixed-precision rows.

    Args:
        grid_id: Grid session identifier
        grid_service: Grid service (injected dependency)

    Returns:
        TableResponse with header and rows (empty before extraction)

    Raises:
        HTTPException: If the grid does not exist
    """
    try:
        header, rows = grid_service.get_table(grid_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return TableResponse(grid_id=grid_id, header=header, rows=rows)


@router.get(
    "/{grid_id}/export.csv",
    summary="Download point statistics as CSV",
    responses={
        200: {"content": {"text/csv": {}}},
        404: {"description": "Grid not found or no statistics extracted"},
    }
)
async def export_csv(grid_id: GridId, grid_service: GridServiceDep) -> Response:
    """
    Download the extracted statistics as a CSV attachment.

    Args:
        grid_id: Grid session identifier
        grid_service: Grid service (injected dependency)

    Returns:
        CSV response named after the current day

    Raises:
        HTTPException: If the grid does not exist or has no statistics
    """
    try:
        content = grid_service.export_csv(grid_id)
    except SampleGridError as e:
        raise _to_http_error(e)
    return Response(
        content=content,
        media_type=APIConstants.CONTENT_TYPE_CSV,
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )

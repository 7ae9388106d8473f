"""
Unit tests for the grid application service.

Tests cover:
- Grid creation, regeneration and the fallback spacing policy
- Extraction preconditions
- Stale results when the grid changes during extraction
- Caller-level retry
- Table and CSV export
"""
import pytest
from unittest.mock import AsyncMock
from tenacity import wait_none

from app.domain.errors import (
    ExtractionFailed,
    ExtractionPreconditionError,
    GridNotFound,
    InvalidGeometry,
    NoData,
    StaleStatistics,
    UnsupportedGeometryType,
)
from app.infrastructure.session_store import GridSessionStore
from app.services.application.grid_service import GridService

from tests.factories import make_stats

RASTER = "ndvi-2024-03"


# ============================================================
# Grid Lifecycle Tests
# ============================================================

class TestGridLifecycle:
    """Tests for creating, regenerating and discarding grids."""

    def test_create_grid(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 100.0)

        assert session.points
        assert session.generation == 1
        assert session.spacing_m == session.effective_spacing_m == 100.0
        assert session.roi == field_geometry
        assert grid_service.get_grid(session.grid_id) is session

    def test_invalid_roi_creates_no_session(self, grid_service, multipolygon_geometry):
        with pytest.raises(UnsupportedGeometryType):
            grid_service.create_grid(multipolygon_geometry, 100.0)

        assert len(grid_service.store) == 0

    def test_regenerate_replaces_points(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        coarse = len(session.points)

        grid_service.regenerate_grid(session.grid_id, field_geometry, 50.0)

        assert len(session.points) > coarse
        assert session.generation == 2

    def test_failed_regenerate_keeps_points(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 100.0)
        points = session.points

        with pytest.raises(InvalidGeometry):
            grid_service.regenerate_grid(session.grid_id, {"type": "Polygon", "coordinates": []}, 100.0)

        assert session.points == points
        assert session.generation == 1

    def test_clear_grid(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 100.0)

        grid_service.clear_grid(session.grid_id)

        assert session.points == ()
        assert session.generation == 2

    def test_discard_grid(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 100.0)

        grid_service.discard_grid(session.grid_id)

        with pytest.raises(GridNotFound):
            grid_service.get_grid(session.grid_id)


    def test_estimate_creates_no_session(self, grid_service, field_geometry):
        estimate = grid_service.estimate_points(field_geometry, 100.0)

        assert estimate.estimated_points >= 1
        assert len(grid_service.store) == 0

    def test_non_finite_roi_creates_no_session(self, grid_service, field_geometry):
        ring = [list(v) for v in field_geometry["coordinates"][0]]
        ring[1] = [float("nan"), ring[1][1]]

        with pytest.raises(InvalidGeometry):
            grid_service.create_grid({"type": "Polygon", "coordinates": [ring]}, 100.0)

        assert len(grid_service.store) == 0


# ============================================================
# Fallback Spacing Tests
# ============================================================

class TestFallbackSpacing:
    """Tests for the empty-grid fallback policy."""

    def test_fallback_used_for_empty_grid(self, grid_service, diamond_geometry):
        session = grid_service.create_grid(diamond_geometry, 5000.0)

        assert session.points
        assert session.spacing_m == 5000.0
        assert session.effective_spacing_m == 50.0

    def test_fallback_disabled(self, mock_stats_client, generator, diamond_geometry):
        service = GridService(
            stats_client=mock_stats_client,
            generator=generator,
            store=GridSessionStore(),
            fallback_spacing_m=None,
        )

        session = service.create_grid(diamond_geometry, 5000.0)

        assert session.points == ()
        assert session.effective_spacing_m == 5000.0

    def test_fallback_not_used_when_grid_has_points(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 300.0)

        assert session.effective_spacing_m == 300.0


# ============================================================
# Extraction Tests
# ============================================================

class TestExtraction:
    """Tests for statistics extraction."""

    @pytest.mark.asyncio
    async def test_extract_attaches_stats(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)

        await grid_service.extract_point_stats(session.grid_id, RASTER)

        assert [s.id for s in session.stats] == [p.id for p in session.points]
        mock_stats_client.extract_stats.assert_called_once_with(session.points, field_geometry)

    @pytest.mark.asyncio
    async def test_missing_raster(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)

        with pytest.raises(ExtractionPreconditionError, match="raster"):
            await grid_service.extract_point_stats(session.grid_id, None)

        mock_stats_client.extract_stats.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_grid(self, grid_service):
        with pytest.raises(GridNotFound):
            await grid_service.extract_point_stats("missing", RASTER)

    @pytest.mark.asyncio
    async def test_regenerated_during_call_is_stale(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)

        async def regenerate_mid_call(points, roi):
            grid_service.regenerate_grid(session.grid_id, field_geometry, 100.0)
            return make_stats(points)

        mock_stats_client.extract_stats.side_effect = regenerate_mid_call

        with pytest.raises(StaleStatistics):
            await grid_service.extract_point_stats(session.grid_id, RASTER)

        assert session.stats == ()

    @pytest.mark.asyncio
    async def test_cleared_during_call_is_stale(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)

        async def clear_mid_call(points, roi):
            grid_service.clear_grid(session.grid_id)
            return make_stats(points)

        mock_stats_client.extract_stats.side_effect = clear_mid_call

        with pytest.raises(StaleStatistics):
            await grid_service.extract_point_stats(session.grid_id, RASTER)

        assert session.stats == ()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_stats(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        await grid_service.extract_point_stats(session.grid_id, RASTER)
        previous = session.stats

        mock_stats_client.extract_stats.side_effect = ExtractionFailed("boom")

        with pytest.raises(ExtractionFailed):
            await grid_service.extract_point_stats(session.grid_id, RASTER)

        assert session.stats == previous


# ============================================================
# Retry Tests
# ============================================================

class TestRetry:
    """Tests for the caller-level retry policy."""

    def _service(self, client, generator, attempts):
        return GridService(
            stats_client=client,
            generator=generator,
            store=GridSessionStore(),
            fallback_spacing_m=None,
            max_attempts=attempts,
            wait=wait_none(),
        )

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, grid_service, mock_stats_client, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        mock_stats_client.extract_stats.side_effect = ExtractionFailed("down", retryable=True)

        with pytest.raises(ExtractionFailed):
            await grid_service.extract_point_stats(session.grid_id, RASTER)

        assert mock_stats_client.extract_stats.call_count == 1

    @pytest.mark.asyncio
    async def test_retryable_failure_retried(self, generator, field_geometry):
        client = AsyncMock()
        calls = []

        async def flaky(points, roi):
            calls.append(1)
            if len(calls) == 1:
                raise ExtractionFailed("timeout", retryable=True)
            return make_stats(points)

        client.extract_stats.side_effect = flaky
        service = self._service(client, generator, attempts=2)
        session = service.create_grid(field_geometry, 200.0)

        await service.extract_point_stats(session.grid_id, RASTER)

        assert len(calls) == 2
        assert len(session.stats) == len(session.points)

    @pytest.mark.asyncio
    async def test_non_retryable_failure_not_retried(self, generator, field_geometry):
        client = AsyncMock()
        client.extract_stats.side_effect = ExtractionFailed("bad request", retryable=False)
        service = self._service(client, generator, attempts=3)
        session = service.create_grid(field_geometry, 200.0)

        with pytest.raises(ExtractionFailed, match="bad request"):
            await service.extract_point_stats(session.grid_id, RASTER)

        assert client.extract_stats.call_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, generator, field_geometry):
        client = AsyncMock()
        client.extract_stats.side_effect = ExtractionFailed("down", retryable=True)
        service = self._service(client, generator, attempts=3)
        session = service.create_grid(field_geometry, 200.0)

        with pytest.raises(ExtractionFailed, match="down"):
            await service.extract_point_stats(session.grid_id, RASTER)

        assert client.extract_stats.call_count == 3


# ============================================================
# Export Tests
# ============================================================

class TestExport:
    """Tests for table and CSV export through the service."""

    @pytest.mark.asyncio
    async def test_table_after_extraction(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        await grid_service.extract_point_stats(session.grid_id, RASTER)

        header, rows = grid_service.get_table(session.grid_id)

        assert header == ["id", "lat", "lng", "ndvi_mean", "evi_mean"]
        assert len(rows) == len(session.points)

    @pytest.mark.asyncio
    async def test_csv_after_extraction(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        await grid_service.extract_point_stats(session.grid_id, RASTER)

        content = grid_service.export_csv(session.grid_id).decode("utf-8")

        assert content.startswith("id,lat,lng,ndvi_mean,evi_mean\n")

    def test_csv_without_stats(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)

        with pytest.raises(NoData):
            grid_service.export_csv(session.grid_id)

    @pytest.mark.asyncio
    async def test_csv_after_clear(self, grid_service, field_geometry):
        session = grid_service.create_grid(field_geometry, 200.0)
        await grid_service.extract_point_stats(session.grid_id, RASTER)
        grid_service.clear_grid(session.grid_id)

        with pytest.raises(NoData):
            grid_service.export_csv(session.grid_id)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

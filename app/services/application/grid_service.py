"""
Application service: Orchestration layer for sample grid operations.
"""
from typing import Any, Mapping, Optional
import logging

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.config import settings
from app.domain.errors import ExtractionFailed, ExtractionPreconditionError
from app.domain.models import GridEstimate
from app.infrastructure.session_store import GridSessionStore
from app.infrastructure.stats_client import StatsExtractionClient
from app.services.domain.grid_generator import GridGenerator
from app.services.domain.grid_session import GridSession
from app.services.domain import report_formatter

logger = logging.getLogger(__name__)

_UNSET = object()


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ExtractionFailed) and exc.retryable


class GridService:
    """
    Application service for sample grid operations.

    Coordinates the generator, the session store and the statistics client.
    Caller-level policies live here: the fallback spacing retried when a grid
    comes out empty, and the bounded retry around statistics extraction.
    """

    def __init__(
        self,
        stats_client: StatsExtractionClient,
        generator: GridGenerator,
        store: GridSessionStore,
        fallback_spacing_m: Any = _UNSET,
        max_attempts: Optional[int] = None,
        wait=None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            stats_client: Client for the remote statistics service
            generator: Sample grid generator
            store: Registry of grid sessions
            fallback_spacing_m: Spacing retried once for empty grids (None disables)
            max_attempts: Attempts per extraction (1 means no retry)
            wait: tenacity wait strategy between extraction attempts
        """
        self.stats_client = stats_client
        self.generator = generator
        self.store = store
        self.fallback_spacing_m = (
            settings.grid_fallback_spacing_m if fallback_spacing_m is _UNSET else fallback_spacing_m
        )
        self.max_attempts = max_attempts or settings.extraction_max_attempts
        self.wait = wait or wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        )

    def _generate(
        self,
        geometry: Mapping[str, Any],
        spacing_m: float,
    ) -> tuple[list, float]:
        """
        Generate points, applying the fallback spacing policy.

        Returns:
            Tuple of (points, effective spacing in meters)
        """
        points = self.generator.generate(geometry, spacing_m)

        if not points and self.fallback_spacing_m and self.fallback_spacing_m != spacing_m:
            logger.warning(f"No points inside ROI at {spacing_m}m, "
                           f"retrying at fallback spacing {self.fallback_spacing_m}m")
            fallback_points = self.generator.generate(geometry, self.fallback_spacing_m)
            if fallback_points:
                return fallback_points, self.fallback_spacing_m

        return points, spacing_m

    @staticmethod
    def _apply(
        session: GridSession,
        geometry: Mapping[str, Any],
        spacing_m: float,
        points: list,
        effective_spacing_m: float,
    ) -> None:
        session.roi = dict(geometry)
        session.spacing_m = spacing_m
        session.effective_spacing_m = effective_spacing_m
        session.set_points(points)

    def create_grid(self, geometry: Mapping[str, Any], spacing_m: float) -> GridSession:
        """
        Create a session for an ROI and generate its grid.

        Points are generated before the session is registered, so an invalid
        ROI never leaves an orphan session behind.
        """
        points, effective_spacing = self._generate(geometry, spacing_m)
        session = self.store.create()
        self._apply(session, geometry, spacing_m, points, effective_spacing)
        logger.info(f"Created grid {session.grid_id} with {len(points)} points")
        return session

    def regenerate_grid(
        self,
        grid_id: str,
        geometry: Mapping[str, Any],
        spacing_m: float,
    ) -> GridSession:
        """Replace the points of an existing session; a failed generation leaves it untouched."""
        session = self.store.get(grid_id)
        points, effective_spacing = self._generate(geometry, spacing_m)
        self._apply(session, geometry, spacing_m, points, effective_spacing)
        logger.info(f"Regenerated grid {grid_id}: {len(points)} points, "
                    f"generation {session.generation}")
        return session

    def estimate_points(self, geometry: Mapping[str, Any], spacing_m: float) -> GridEstimate:
        """Preview a grid's size from the ROI area; no session is created."""
        return self.generator.estimate(geometry, spacing_m)

    def get_grid(self, grid_id: str) -> GridSession:
        return self.store.get(grid_id)

    def clear_grid(self, grid_id: str) -> GridSession:
        session = self.store.get(grid_id)
        session.clear()
        return session

    def discard_grid(self, grid_id: str) -> None:
        self.store.discard(grid_id)

    async def extract_point_stats(
        self,
        grid_id: str,
        raster_layer_id: Optional[str],
    ) -> GridSession:
        """
        Extract statistics for the current points of a grid.

        This method orchestrates:
        1. Checking the raster and point preconditions
        2. Capturing the session generation
        3. Calling the statistics service (with the configured retry policy)
        4. Attaching the result, rejecting it if the grid changed meanwhile

        Args:
            grid_id: Grid session identifier
            raster_layer_id: Identifier of the raster layer currently rendered

        Returns:
            The session with statistics attached

        Raises:
            ExtractionPreconditionError: If no raster is active or the grid is empty
            ExtractionFailed: If the statistics service call fails
            StaleStatistics: If the grid changed while the call was in flight
        """
        session = self.store.get(grid_id)

        if not raster_layer_id:
            raise ExtractionPreconditionError(
                "Render a raster layer before extracting point statistics"
            )

        generation = session.generation
        points = session.points
        roi = session.roi

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                stats = await self.stats_client.extract_stats(points, roi)

        session.attach_stats(stats, generation)
        return session

    def get_table(self, grid_id: str) -> tuple[list[str], list[list[str]]]:
        session = self.store.get(grid_id)
        return report_formatter.to_table(session.stats)

    def export_csv(self, grid_id: str) -> bytes:
        session = self.store.get(grid_id)
        return report_formatter.to_flat_file(session.stats)

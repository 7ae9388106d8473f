"""
Domain service: State of one sample grid and the statistics attached to it.
"""
from typing import Any, Iterable, Mapping, Optional
import logging

from app.domain.errors import StaleStatistics
from app.domain.models import PointStatistic, SamplePoint
from app.utils.geometry import polygon_ring
from app.utils.geo_projection import polygon_area_hectares

logger = logging.getLogger(__name__)


class GridSession:
    """
    Current sample points of one ROI and the statistics extracted for them.

    Every change to the point set bumps ``generation``. Callers capture the
    generation when they send an extraction request and hand it back to
    ``attach_stats``; a mismatch means the points were replaced or cleared
    while the request was in flight.
    """

    def __init__(self, grid_id: str):
        self.grid_id = grid_id
        self.roi: Optional[Mapping[str, Any]] = None
        self.spacing_m: Optional[float] = None
        self.effective_spacing_m: Optional[float] = None
        self.generation = 0
        self._points: tuple[SamplePoint, ...] = ()
        self._stats: tuple[PointStatistic, ...] = ()

    @property
    def points(self) -> tuple[SamplePoint, ...]:
        return self._points

    @property
    def stats(self) -> tuple[PointStatistic, ...]:
        return self._stats

    def set_points(self, points: Iterable[SamplePoint]) -> int:
        """
        Replace the point set and drop any attached statistics.

        Args:
            points: New sample points

        Returns:
            The new generation number
        """
        self._points = tuple(points)
        self._stats = ()
        self.generation += 1
        logger.debug(f"Grid {self.grid_id}: {len(self._points)} points, generation {self.generation}")
        return self.generation

    def clear(self) -> int:
        """
        Remove all points and statistics.

        Returns:
            The new generation number
        """
        self._points = ()
        self._stats = ()
        self.generation += 1
        logger.debug(f"Grid {self.grid_id}: cleared, generation {self.generation}")
        return self.generation

    def attach_stats(self, stats: Iterable[PointStatistic], generation: int) -> None:
        """
        Attach extracted statistics to the current points.

        Args:
            stats: One statistic per sample point
            generation: Session generation captured when the request was sent

        Raises:
            StaleStatistics: If the points changed since the request was sent,
                or the statistic ids do not match the current point ids
        """
        stats = list(stats)

        if generation != self.generation:
            logger.warning(f"Grid {self.grid_id}: discarding statistics for generation "
                           f"{generation} (current: {self.generation})")
            raise StaleStatistics(
                f"Grid {self.grid_id} changed while statistics were being extracted"
            )

        point_ids = [p.id for p in self._points]
        stat_ids = [s.id for s in stats]
        if len(stat_ids) != len(set(stat_ids)) or set(stat_ids) != set(point_ids):
            raise StaleStatistics(
                f"Statistics for grid {self.grid_id} do not match its {len(point_ids)} points"
            )

        order = {point_id: index for index, point_id in enumerate(point_ids)}
        self._stats = tuple(sorted(stats, key=lambda s: order[s.id]))
        logger.info(f"Grid {self.grid_id}: attached statistics for {len(self._stats)} points")

    def density(self) -> float:
        """
        Sample points per hectare of the ROI.

        Returns:
            Points per hectare, 0.0 without an ROI or with zero area
        """
        if not self.roi:
            return 0.0
        area = polygon_area_hectares(polygon_ring(self.roi))
        if area <= 0:
            return 0.0
        return len(self._points) / area

"""
Domain service: Sample grid generation inside a region of interest.

Builds a regular lattice over the polygon's bounding box at a caller-chosen
spacing, keeps the lattice points that fall inside the polygon and numbers
them densely from 1 in row-major order (latitude outer, longitude inner).
"""
from typing import Any, Mapping, Optional
from dataclasses import dataclass
import math
import logging

import numpy as np

from app.config import settings
from app.domain.errors import InvalidSpacing
from app.domain.models import GridEstimate, SamplePoint
from app.utils.geometry import compute_bounds, is_inside_polygon, polygon_ring
from app.utils.geo_projection import polygon_area_hectares, spacing_to_degrees

logger = logging.getLogger(__name__)


@dataclass
class GridConfig:
    """Configuration for sample grid generation."""

    meters_per_degree: float = 111000.0
    """Meters per degree of latitude used to convert spacing to degrees"""

    tolerance: float = 1e-9
    """Fraction of a step tolerated when deciding whether the last row/column fits"""

    max_points: int = 250000
    """Upper bound on lattice candidates before filtering"""


def lattice_count(start: float, stop: float, step: float, tolerance: float) -> int:
    """Number of values ``lattice_axis`` yields for the same arguments."""
    return max(int(math.floor((stop - start) / step + tolerance)) + 1, 1)


def lattice_axis(start: float, stop: float, step: float, tolerance: float) -> np.ndarray:
    """
    Evenly stepped values from start to stop inclusive.

    Values are computed as ``start + i * step`` so that rounding error does
    not accumulate across the axis.

    Args:
        start: First value
        stop: Upper bound (inclusive, within tolerance)
        step: Positive step
        tolerance: Fraction of a step allowed past ``stop``

    Returns:
        1-D array of axis values
    """
    return start + np.arange(lattice_count(start, stop, step, tolerance)) * step


def _check_spacing(spacing_meters: Any) -> None:
    # bool is an int subclass; True must not mean 1 m
    if isinstance(spacing_meters, bool) or not isinstance(spacing_meters, (int, float)) \
            or not math.isfinite(spacing_meters) or spacing_meters <= 0:
        raise InvalidSpacing(f"Spacing must be a positive number of meters, got {spacing_meters!r}")


class GridGenerator:
    """
    Domain service for generating sample point grids.

    Deterministic: the same (polygon, spacing) always yields the same points
    with the same identifiers. Holds no state between calls.
    """

    def __init__(self, config: Optional[GridConfig] = None):
        """
        Initialize the generator.

        Args:
            config: Full configuration object (defaults come from settings)
        """
        if config:
            self.config = config
        else:
            self.config = GridConfig(
                meters_per_degree=settings.grid_meters_per_degree,
                tolerance=settings.grid_tolerance,
                max_points=settings.grid_max_points,
            )

        logger.info(f"Initialized GridGenerator with config: "
                    f"meters_per_degree={self.config.meters_per_degree}, "
                    f"tolerance={self.config.tolerance}")

    def generate(
        self,
        geometry: Mapping[str, Any],
        spacing_meters: float,
    ) -> list[SamplePoint]:
        """
        Generate sample points inside a polygon.

        Args:
            geometry: GeoJSON Polygon geometry
            spacing_meters: Distance between lattice points in meters

        Returns:
            List of SamplePoint, possibly empty when no lattice point falls
            inside the polygon

        Raises:
            UnsupportedGeometryType: If geometry is not a Polygon
            InvalidGeometry: If the polygon is malformed
            InvalidSpacing: If spacing is not positive or yields too many candidates
        """
        ring = polygon_ring(geometry)
        _check_spacing(spacing_meters)

        # Step 1: Bounds of the outer ring
        bounds = compute_bounds(ring)
        logger.debug(f"Grid bounds: lat [{bounds.min_lat}, {bounds.max_lat}], "
                     f"lng [{bounds.min_lng}, {bounds.max_lng}]")

        # Step 2: Meters to degrees at the centre latitude
        lat_step, lng_step = spacing_to_degrees(
            spacing_meters, bounds.center_lat, self.config.meters_per_degree
        )
        logger.debug(f"Spacing {spacing_meters}m -> lat_step={lat_step:.8f}, lng_step={lng_step:.8f}")

        # Step 3: Candidate lattice, sized before anything is allocated
        tolerance = self.config.tolerance
        lat_count = lattice_count(bounds.min_lat, bounds.max_lat, lat_step, tolerance)
        lng_count = lattice_count(bounds.min_lng, bounds.max_lng, lng_step, tolerance)

        candidate_count = lat_count * lng_count
        if candidate_count > self.config.max_points:
            raise InvalidSpacing(
                f"Spacing of {spacing_meters}m produces {candidate_count} candidates "
                f"(limit {self.config.max_points}); choose a larger spacing"
            )

        lats = lattice_axis(bounds.min_lat, bounds.max_lat, lat_step, tolerance)
        lngs = lattice_axis(bounds.min_lng, bounds.max_lng, lng_step, tolerance)

        # Step 4: Keep candidates inside the ring, numbering as we go
        points = []
        for lat in lats:
            for lng in lngs:
                if is_inside_polygon((float(lng), float(lat)), ring):
                    points.append(SamplePoint(id=len(points) + 1, lat=float(lat), lng=float(lng)))

        logger.info(f"Generated {len(points)} sample points from {candidate_count} candidates "
                    f"(spacing: {spacing_meters}m)")
        return points

    def estimate(
        self,
        geometry: Mapping[str, Any],
        spacing_meters: float,
    ) -> GridEstimate:
        """
        Preview the size of a grid without enumerating the lattice.

        Each point stands for a square of ``spacing`` meters on a side, so the
        estimate is the ROI area divided by that square, never less than 1.
        Edge effects make the real count differ, most for small or thin ROIs.

        Args:
            geometry: GeoJSON Polygon geometry
            spacing_meters: Distance between lattice points in meters

        Returns:
            GridEstimate for the ROI and spacing

        Raises:
            UnsupportedGeometryType: If geometry is not a Polygon
            InvalidGeometry: If the polygon is malformed
            InvalidSpacing: If spacing is not positive, or so small the
                estimate overflows
        """
        ring = polygon_ring(geometry)
        _check_spacing(spacing_meters)

        area_ha = polygon_area_hectares(ring)
        hectares_per_point = (spacing_meters / 100.0) ** 2
        if hectares_per_point == 0 or not math.isfinite(area_ha / hectares_per_point):
            raise InvalidSpacing(f"Spacing of {spacing_meters}m is too small to estimate")
        estimated = max(1, math.floor(area_ha / hectares_per_point))

        logger.debug(f"Estimated {estimated} points for {area_ha:.2f} ha at {spacing_meters}m")
        return GridEstimate(
            spacing_m=float(spacing_meters),
            area_ha=area_ha,
            hectares_per_point=hectares_per_point,
            estimated_points=estimated,
        )


def generate_grid(geometry: Mapping[str, Any], spacing_meters: float) -> list[SamplePoint]:
    """
    Generate a sample grid with the default configuration.

    Args:
        geometry: GeoJSON Polygon geometry
        spacing_meters: Distance between lattice points in meters

    Returns:
        List of SamplePoint
    """
    return GridGenerator().generate(geometry, spacing_meters)

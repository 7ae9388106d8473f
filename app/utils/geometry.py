"""
Polygon helper functions.

Provides utilities for:
- Extracting the outer ring of a GeoJSON polygon
- Bounding box computation
- Even-odd point-in-polygon testing
"""
from typing import Any, Mapping, Sequence
import logging
import math

from app.domain.errors import InvalidGeometry, UnsupportedGeometryType
from app.domain.models import BoundingBox

logger = logging.getLogger(__name__)


def _distinct_vertices(vertices: Sequence[Sequence[float]]) -> Sequence[Sequence[float]]:
    """Drop the repeated closing vertex of an explicitly closed ring."""
    if len(vertices) > 1 and tuple(vertices[0]) == tuple(vertices[-1]):
        return vertices[:-1]
    return vertices


def polygon_ring(geometry: Mapping[str, Any]) -> list[tuple[float, float]]:
    """
    Extract the outer ring of a GeoJSON Polygon as (lng, lat) tuples.

    Args:
        geometry: GeoJSON geometry mapping

    Returns:
        Outer ring vertices as (longitude, latitude) tuples

    Raises:
        UnsupportedGeometryType: If the geometry is not a Polygon
        InvalidGeometry: If the coordinates are malformed
    """
    if not isinstance(geometry, Mapping):
        raise InvalidGeometry("Geometry must be a GeoJSON object")

    geometry_type = geometry.get("type")
    if geometry_type != "Polygon":
        raise UnsupportedGeometryType(
            f"Unsupported geometry type '{geometry_type}': only Polygon can be sampled"
        )

    rings = geometry.get("coordinates")
    if not isinstance(rings, (list, tuple)) or not rings:
        raise InvalidGeometry("Polygon has no coordinates")
    if len(rings) > 1:
        logger.debug(f"Ignoring {len(rings) - 1} interior ring(s); sampling outer ring only")

    ring = []
    for vertex in rings[0]:
        try:
            lng, lat = float(vertex[0]), float(vertex[1])
        except (TypeError, ValueError, IndexError):
            raise InvalidGeometry(f"Invalid polygon vertex: {vertex!r}")
        if not math.isfinite(lng) or not math.isfinite(lat):
            raise InvalidGeometry(f"Polygon vertex is not finite: {vertex!r}")
        if not -90.0 <= lat <= 90.0:
            raise InvalidGeometry(f"Polygon vertex latitude out of range [-90, 90]: {vertex!r}")
        ring.append((lng, lat))

    if len(_distinct_vertices(ring)) < 3:
        raise InvalidGeometry("Polygon needs at least 3 vertices")

    return ring


def compute_bounds(vertices: Sequence[Sequence[float]]) -> BoundingBox:
    """
    Compute the bounding box of a polygon ring.

    The centre is the midpoint of the bounds, not the vertex centroid.

    Args:
        vertices: Ordered (longitude, latitude) pairs

    Returns:
        BoundingBox instance

    Raises:
        InvalidGeometry: If fewer than 3 vertices are given
    """
    if len(_distinct_vertices(vertices)) < 3:
        raise InvalidGeometry("Polygon needs at least 3 vertices")

    lngs = [v[0] for v in vertices]
    lats = [v[1] for v in vertices]

    return BoundingBox(
        min_lat=min(lats),
        max_lat=max(lats),
        min_lng=min(lngs),
        max_lng=max(lngs),
    )


def is_inside_polygon(
    point: tuple[float, float],
    ring: Sequence[Sequence[float]]
) -> bool:
    """
    Check if a point is inside a polygon ring using the even-odd rule.

    A ray is cast from the point in the +x direction and edges whose y-span
    straddles the point's y are counted. The ring is treated as closed, so
    the last vertex connects back to the first. Membership of points lying
    exactly on an edge is implementation-defined.

    Args:
        point: (x, y) coordinate tuple, i.e. (longitude, latitude)
        ring: List of (x, y) coordinates defining the polygon

    Returns:
        True if point is inside polygon, False otherwise
    """
    x, y = point
    inside = False

    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]

        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i

    return inside

"""
Geospatial conversion utilities for spacing and area.
"""
import math
from typing import Sequence, Tuple

from pyproj import Geod
from shapely.geometry import Polygon

from app.config import settings

# WGS84 ellipsoid used for geodesic area
_GEOD = Geod(ellps="WGS84")

SQUARE_METERS_PER_HECTARE = 10_000.0


def spacing_to_degrees(
    spacing_meters: float,
    center_latitude: float,
    meters_per_degree: float = None,
) -> Tuple[float, float]:
    """
    Convert a ground spacing in meters to latitude/longitude steps in degrees.

    Local equirectangular approximation: a fixed number of meters per degree
    of latitude, with longitude scaled by the cosine of the centre latitude.
    Degrades towards the poles.

    Args:
        spacing_meters: Spacing between samples in meters
        center_latitude: Latitude in degrees where the scale is evaluated
        meters_per_degree: Override for the meters-per-degree constant

    Returns:
        Tuple of (latitude_step, longitude_step) in degrees
    """
    meters_per_degree = meters_per_degree or settings.grid_meters_per_degree
    lat_step = spacing_meters / meters_per_degree
    lng_step = spacing_meters / (meters_per_degree * math.cos(math.radians(center_latitude)))
    return lat_step, lng_step


def polygon_area_hectares(ring: Sequence[Sequence[float]]) -> float:
    """
    Compute the geodesic area of a polygon ring in hectares.

    Args:
        ring: List of (longitude, latitude) pairs

    Returns:
        Area in hectares (always non-negative)
    """
    polygon = Polygon([(v[0], v[1]) for v in ring])
    area_m2, _ = _GEOD.geometry_area_perimeter(polygon)
    return abs(area_m2) / SQUARE_METERS_PER_HECTARE

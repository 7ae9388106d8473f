"""
Domain models for sample grids and per-point statistics.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, session storage, etc.).
"""
from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Axis-aligned bounds of a polygon in degrees."""
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    class Config:
        frozen = True

    @property
    def center_lat(self) -> float:
        return (self.min_lat + self.max_lat) / 2

    @property
    def center_lng(self) -> float:
        return (self.min_lng + self.max_lng) / 2


class SamplePoint(BaseModel):
    """Single lattice point kept inside the ROI."""
    id: int = Field(ge=1, description="Dense identifier, 1-based, in generation order")
    lat: float
    lng: float

    class Config:
        frozen = True


class PointStatistic(BaseModel):
    """Raster statistics for one sample point."""
    id: int
    lat: float = Field(description="Latitude echoed back by the statistics service")
    lng: float = Field(description="Longitude echoed back by the statistics service")
    ndvi_mean: float = Field(description="Mean NDVI around the point")
    evi_mean: float = Field(description="Mean EVI around the point")

    class Config:
        frozen = True


class GridEstimate(BaseModel):
    """Rough size of a grid, computed from ROI area alone."""
    spacing_m: float
    area_ha: float = Field(description="Geodesic area of the ROI in hectares")
    hectares_per_point: float = Field(description="Ground area each sample point stands for")
    estimated_points: int = Field(ge=1, description="Area divided by area per point, at least 1")

    class Config:
        frozen = True

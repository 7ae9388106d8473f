"""
API response models using Pydantic.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from app.domain.models import PointStatistic, SamplePoint
from app.services.domain.grid_session import GridSession


class GridResponse(BaseModel):
    """Response model for a sample grid."""
    grid_id: str = Field(
        description="Unique identifier for the grid session"
    )
    generation: int = Field(
        description="Counter bumped every time the point set changes"
    )
    spacing_m: Optional[float] = Field(
        default=None,
        description="Spacing requested by the caller, in meters"
    )
    effective_spacing_m: Optional[float] = Field(
        default=None,
        description="Spacing actually used (differs when the fallback spacing kicked in)"
    )
    point_count: int = Field(
        description="Number of sample points inside the ROI"
    )
    density_per_ha: float = Field(
        description="Sample points per hectare of ROI"
    )
    stats_count: int = Field(
        description="Number of points with extracted statistics"
    )
    points: List[SamplePoint] = Field(
        description="Sample points in generation order"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "grid_id": "5f0c2d0e9b1a4f7e8c3d2b1a0f9e8d7c",
                "generation": 1,
                "spacing_m": 100.0,
                "effective_spacing_m": 100.0,
                "point_count": 2,
                "density_per_ha": 0.98,
                "stats_count": 0,
                "points": [
                    {"id": 1, "lat": -22.909, "lng": -47.059},
                    {"id": 2, "lat": -22.909, "lng": -47.058},
                ]
            }
        }

    @classmethod
    def from_session(cls, session: GridSession) -> "GridResponse":
        return cls(
            grid_id=session.grid_id,
            generation=session.generation,
            spacing_m=session.spacing_m,
            effective_spacing_m=session.effective_spacing_m,
            point_count=len(session.points),
            density_per_ha=round(session.density(), 2),
            stats_count=len(session.stats),
            points=list(session.points),
        )


class PointStatsResponse(BaseModel):
    """Response model for statistics extraction."""
    grid_id: str
    generation: int
    stats: List[PointStatistic]


class TableResponse(BaseModel):
    """Point statistics formatted for display."""
    grid_id: str
    header: List[str] = Field(
        description="Column names, in order"
    )
    rows: List[List[str]] = Field(
        description="Rows of fixed-precision values, matching the CSV export"
    )


class EstimateResponse(BaseModel):
    """Preview of a grid's size before it is generated."""
    spacing_m: float = Field(
        description="Spacing the estimate was made for, in meters"
    )
    area_ha: float = Field(
        description="Geodesic area of the ROI in hectares"
    )
    hectares_per_point: float = Field(
        description="Ground area each sample point stands for, (spacing / 100)^2"
    )
    estimated_points: int = Field(
        description="ROI area over area per point, never less than 1"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "spacing_m": 100.0,
                "area_ha": 114.05,
                "hectares_per_point": 1.0,
                "estimated_points": 114,
            }
        }

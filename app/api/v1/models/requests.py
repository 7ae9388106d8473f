"""
API request models using Pydantic.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class GridRequest(BaseModel):
    """Request body for creating or regenerating a sample grid."""
    geometry: Dict[str, Any] = Field(
        description="ROI as a GeoJSON Polygon geometry ([lng, lat] coordinates)"
    )
    spacing_m: float = Field(
        gt=0,
        description="Distance between sample points in meters",
        examples=[100.0]
    )

    class Config:
        json_schema_extra = {
            "example": {
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[
                        [-47.06, -22.91],
                        [-47.05, -22.91],
                        [-47.05, -22.90],
                        [-47.06, -22.90],
                        [-47.06, -22.91],
                    ]]
                },
                "spacing_m": 100.0,
            }
        }


class ExtractStatsRequest(BaseModel):
    """Request body for extracting point statistics."""
    raster_layer_id: Optional[str] = Field(
        default=None,
        description="Identifier of the raster layer currently rendered; required"
    )

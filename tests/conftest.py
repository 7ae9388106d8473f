"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample ROI geometries
- Sample grid points and statistics
- Mock statistics client
- FastAPI test client
"""
import os

# Extraction tests must not trip the per-client rate limit
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from tenacity import wait_none

from app.main import app
from app.domain.models import PointStatistic, SamplePoint
from app.infrastructure.session_store import GridSessionStore
from app.infrastructure.stats_client import StatsExtractionClient
from app.services.application.grid_service import GridService
from app.services.domain.grid_generator import GridGenerator, GridConfig

from tests.factories import make_stats


# ============================================================
# Sample Geometry Fixtures
# ============================================================

@pytest.fixture
def square_geometry() -> dict:
    """0.01 degree square at the origin, explicitly closed."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [0.0, 0.0],
            [0.0, 0.01],
            [0.01, 0.01],
            [0.01, 0.0],
            [0.0, 0.0],
        ]],
    }


@pytest.fixture
def diamond_geometry() -> dict:
    """Diamond whose bounding box corners all lie outside the polygon."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [0.005, 0.0],
            [0.01, 0.005],
            [0.005, 0.01],
            [0.0, 0.005],
            [0.005, 0.0],
        ]],
    }


@pytest.fixture
def field_geometry() -> dict:
    """Roughly 1 km x 1.1 km field in the southern hemisphere."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [-47.06, -22.91],
            [-47.05, -22.91],
            [-47.05, -22.90],
            [-47.06, -22.90],
            [-47.06, -22.91],
        ]],
    }


@pytest.fixture
def l_shaped_geometry() -> dict:
    """Concave L-shaped polygon, implicitly closed."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [0.0, 0.0],
            [0.02, 0.0],
            [0.02, 0.01],
            [0.01, 0.01],
            [0.01, 0.02],
            [0.0, 0.02],
        ]],
    }


@pytest.fixture
def multipolygon_geometry() -> dict:
    """Two-part geometry that the generator must refuse."""
    return {
        "type": "MultiPolygon",
        "coordinates": [
            [[[0.0, 0.0], [0.0, 0.01], [0.01, 0.01], [0.01, 0.0], [0.0, 0.0]]],
            [[[1.0, 1.0], [1.0, 1.01], [1.01, 1.01], [1.01, 1.0], [1.0, 1.0]]],
        ],
    }


# ============================================================
# Sample Grid Fixtures
# ============================================================

@pytest.fixture
def sample_points() -> list[SamplePoint]:
    """Three points of a small grid."""
    return [
        SamplePoint(id=1, lat=-22.909, lng=-47.059),
        SamplePoint(id=2, lat=-22.909, lng=-47.058),
        SamplePoint(id=3, lat=-22.908, lng=-47.059),
    ]


@pytest.fixture
def sample_stats(sample_points) -> list[PointStatistic]:
    """Statistics matching sample_points."""
    return make_stats(sample_points)


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def generator() -> GridGenerator:
    return GridGenerator(config=GridConfig())


@pytest.fixture
def mock_stats_client():
    """Statistics client that answers with one statistic per requested point."""
    mock_client = AsyncMock(spec=StatsExtractionClient)
    mock_client.extract_stats.side_effect = lambda points, roi: make_stats(points)
    return mock_client


@pytest.fixture
def grid_service(mock_stats_client, generator) -> GridService:
    return GridService(
        stats_client=mock_stats_client,
        generator=generator,
        store=GridSessionStore(),
        fallback_spacing_m=50.0,
        max_attempts=1,
        wait=wait_none(),
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)

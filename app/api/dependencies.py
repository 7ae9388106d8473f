"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends

from app.infrastructure.session_store import (
    GridSessionStore,
    get_session_store,
)
from app.infrastructure.stats_client import (
    StatsExtractionClient,
    get_stats_client,
)
from app.services.domain.grid_generator import GridGenerator
from app.services.application.grid_service import GridService


def get_grid_generator() -> GridGenerator:
    """
    Dependency factory for GridGenerator.

    Returns:
        GridGenerator instance
    """
    return GridGenerator()


def get_grid_service(
    stats_client: Annotated[StatsExtractionClient, Depends(get_stats_client)],
    generator: Annotated[GridGenerator, Depends(get_grid_generator)],
    store: Annotated[GridSessionStore, Depends(get_session_store)],
) -> GridService:
    """
    Dependency factory for GridService.

    Args:
        stats_client: Statistics service client (injected)
        generator: Sample grid generator (injected)
        store: Grid session store (injected)

    Returns:
        GridService instance
    """
    return GridService(stats_client=stats_client, generator=generator, store=store)


# Type aliases for cleaner route signatures
GridServiceDep = Annotated[GridService, Depends(get_grid_service)]

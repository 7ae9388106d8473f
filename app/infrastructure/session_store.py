"""
Infrastructure layer: In-memory registry of grid sessions.
"""
from typing import Optional
import logging
import uuid

from app.domain.errors import GridNotFound
from app.services.domain.grid_session import GridSession

logger = logging.getLogger(__name__)


class GridSessionStore:
    """Holds the live grid sessions of this process, keyed by grid id."""

    def __init__(self):
        self._sessions: dict[str, GridSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> GridSession:
        """Create and register an empty session."""
        session = GridSession(grid_id=uuid.uuid4().hex)
        self._sessions[session.grid_id] = session
        logger.debug(f"Created grid session {session.grid_id}")
        return session

    def get(self, grid_id: str) -> GridSession:
        """
        Look up a session.

        Raises:
            GridNotFound: If no session has this id
        """
        session = self._sessions.get(grid_id)
        if session is None:
            raise GridNotFound(f"Grid '{grid_id}' not found")
        return session

    def discard(self, grid_id: str) -> None:
        """
        Discard a session together with its ROI.

        The session is cleared first so that in-flight extractions holding a
        reference to it come back stale.
        """
        session = self.get(grid_id)
        session.clear()
        session.roi = None
        del self._sessions[grid_id]
        logger.info(f"Discarded grid session {grid_id}")


# Singleton instance
_session_store: Optional[GridSessionStore] = None


def get_session_store() -> GridSessionStore:
    """
    Get or create the singleton session store.

    Returns:
        GridSessionStore instance
    """
    global _session_store
    if _session_store is None:
        _session_store = GridSessionStore()
    return _session_store

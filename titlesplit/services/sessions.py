"""
In-memory calculator sessions.

Each session holds one DealCalculator for as long as the process runs.
Nothing is written to disk; the oldest session is dropped once the
configured limit is reached.
"""

import logging
import uuid
from collections import OrderedDict
from typing import Optional

from titlesplit.calculations.calculator import DealCalculator, create_calculator
from titlesplit.config import Settings, get_settings

logger = logging.getLogger(__name__)


class SessionStore:
    """Calculator sessions keyed by id."""

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, DealCalculator]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, settings: Optional[Settings] = None) -> tuple:
        """Start a session with default values. Returns (session_id, calculator)."""
        session_id = str(uuid.uuid4())
        calculator = create_calculator(settings)
        self._sessions[session_id] = calculator

        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Session limit reached, dropped session {evicted}")

        return session_id, calculator

    def get(self, session_id: str) -> Optional[DealCalculator]:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()


_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    global _store
    if _store is None:
        _store = SessionStore(max_sessions=get_settings().max_sessions)
    return _store

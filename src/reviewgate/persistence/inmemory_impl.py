"""
In-Memory Session Repository
============================

Keeps deep copies of every stored session so callers can never alias the
stored state. Nothing survives the process; use FileSessionRepository for
real hook invocations.
"""

import logging
from typing import Dict

from reviewgate.core.state import SessionState

from .repositories import SessionRepository, SessionSummary

logger = logging.getLogger(__name__)


class InMemorySessionRepository(SessionRepository):
    """In-memory session store used by tests and the `memory` backend."""

    def __init__(self):
        self._sessions: Dict[str, SessionState] = {}
        logger.debug("InMemorySessionRepository initialized")

    def get(self, session_id: str) -> SessionState | None:
        state = self._sessions.get(session_id)
        return state.model_copy(deep=True) if state is not None else None

    def put(self, state: SessionState) -> None:
        self._sessions[state.session_id] = state.model_copy(deep=True)

    def list(self, limit: int | None = None) -> list[SessionSummary]:
        states = sorted(self._sessions.values(), key=lambda s: s.created_at, reverse=True)
        if limit is not None:
            states = states[:limit]
        return [SessionSummary.from_state(s) for s in states]

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

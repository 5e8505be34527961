"""
Abstract Repository Interfaces
================================

Defines the contract for session persistence.
Handlers receive a repository explicitly; the backend is chosen once at
start-up (file for real use, in-memory for tests).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from reviewgate.core.state import SessionState


@dataclass
class SessionSummary:
    """Lightweight listing row for one session"""
    session_id: str
    first_prompt: str | None
    created_at: datetime
    event_count: int
    review_active: bool

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionSummary":
        return cls(
            session_id=state.session_id,
            first_prompt=state.review.user_prompts[0] if state.review.user_prompts else None,
            created_at=state.created_at,
            event_count=len(state.trace),
            review_active=state.review_active,
        )


class SessionRepository(ABC):
    """
    Abstract interface for session persistence.

    Implementations:
    - FileSessionRepository: one JSON document per session, atomic replace
    - InMemorySessionRepository: dictionary of copies, for tests
    """

    @abstractmethod
    def get(self, session_id: str) -> SessionState | None:
        """Load a session, or None if it was never stored"""
        pass

    @abstractmethod
    def put(self, state: SessionState) -> None:
        """Store a session, replacing any previous record as a whole"""
        pass

    @abstractmethod
    def list(self, limit: int | None = None) -> list[SessionSummary]:
        """List sessions, newest created first"""
        pass

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist"""
        pass

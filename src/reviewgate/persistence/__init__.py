"""
Persistence Layer - Repository Pattern
======================================

Abstract session store with two interchangeable backends. The backend is
picked once at start-up and passed to handlers explicitly.
"""

import logging

from reviewgate.config.settings import Settings

from .file_impl import FileSessionRepository
from .inmemory_impl import InMemorySessionRepository
from .repositories import SessionRepository, SessionSummary
from .retention import clean_sessions, parse_duration

logger = logging.getLogger(__name__)


def create_session_repository(settings: Settings) -> SessionRepository:
    """Build the repository selected by ``storage.backend``."""
    if settings.storage.backend == "memory":
        logger.debug("Using in-memory session storage")
        return InMemorySessionRepository()
    return FileSessionRepository(settings.storage.path)


__all__ = [
    "FileSessionRepository",
    "InMemorySessionRepository",
    "SessionRepository",
    "SessionSummary",
    "clean_sessions",
    "create_session_repository",
    "parse_duration",
]

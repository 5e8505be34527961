"""Core reviewgate module: session model, transitions and errors."""

from reviewgate.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    InvalidDecisionError,
    ReviewGateError,
    SerializationError,
    SessionNotFoundError,
    StorageError,
)
from reviewgate.core.state import (
    CompleteDecision,
    EventType,
    IssuesDecision,
    PendingDecision,
    ReviewState,
    SessionState,
    TraceEvent,
)

__all__ = [
    "CompleteDecision",
    "ConfigurationError",
    "ErrorCode",
    "EventType",
    "InvalidDecisionError",
    "IssuesDecision",
    "PendingDecision",
    "ReviewGateError",
    "ReviewState",
    "SerializationError",
    "SessionNotFoundError",
    "SessionState",
    "StorageError",
    "TraceEvent",
]

"""Posting reviewer decisions to a stored session."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from .exceptions import InvalidDecisionError, SessionNotFoundError
from .state import CompleteDecision, EventType, IssuesDecision, SessionState
from .structured_logger import SessionContext, get_logger
from .trace import TraceRecorder
from .transitions import apply_decision

if TYPE_CHECKING:
    from reviewgate.persistence.repositories import SessionRepository

logger = get_logger("decisions")


def parse_decision(
    token: str,
    summary: str,
    message: str | None = None,
    opinions: str | None = None,
) -> CompleteDecision | IssuesDecision:
    """
    Build a decision from the reviewer's outcome token.

    Raises:
        InvalidDecisionError: If the token is not COMPLETE or ISSUES
    """
    kind = token.strip().upper()
    if kind == "COMPLETE":
        return CompleteDecision(summary=summary, second_opinions=opinions)
    if kind == "ISSUES":
        return IssuesDecision(summary=summary, message_to_agent=message)
    raise InvalidDecisionError(token)


def post_decision(
    repository: SessionRepository,
    session_id: str,
    decision: CompleteDecision | IssuesDecision,
    recorder: TraceRecorder,
    now: datetime,
) -> SessionState:
    """
    Record a decision on an existing session and persist it.

    Raises:
        SessionNotFoundError: If no session with that id was stored
        StorageError: If the session cannot be read or written
    """
    with SessionContext(session_id):
        state = repository.get(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)

        review = apply_decision(state.review, decision, now)
        trace = recorder.record(
            state.trace,
            EventType.DECISION_POSTED,
            now,
            {"decision": decision.type, "summary": decision.summary},
        )
        updated = state.model_copy(update={"review": review, "trace": trace, "updated_at": now})
        repository.put(updated)
        logger.info("Decision posted", decision=decision.type)
        return updated

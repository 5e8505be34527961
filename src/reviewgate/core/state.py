"""
Session State Model
===================

Pydantic models for one review session. A SessionState is always read and
written as a whole JSON document; nothing below it is persisted on its own.
"""

import hashlib
import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator

# Byte budget for a stored tool input before it is truncated
MAX_INPUT_BYTES = 10 * 1024

_MAX_ARRAY_ITEMS = 10
_MAX_STRING_PREVIEW = 200


class EventType(str, Enum):
    """Closed set of trace event kinds."""

    SESSION_START = "session_start"
    PROMPT_RECEIVED = "prompt_received"
    GATE_BLOCKED = "gate_blocked"
    GATE_ALLOWED = "gate_allowed"
    TOOL_COMPLETED = "tool_completed"
    STOP_HOOK_CALLED = "stop_hook_called"
    DECISION_POSTED = "decision_posted"
    TRACE_COMPACTED = "trace_compacted"
    SESSION_END = "session_end"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# DECISIONS
# =============================================================================


class PendingDecision(BaseModel):
    """No review outcome yet."""
    type: Literal["pending"] = "pending"


class CompleteDecision(BaseModel):
    """Reviewer approved the work."""
    type: Literal["complete"] = "complete"
    summary: str
    second_opinions: str | None = None


class IssuesDecision(BaseModel):
    """Reviewer found problems the agent has to fix."""
    type: Literal["issues"] = "issues"
    summary: str
    message_to_agent: str | None = None


Decision = Annotated[
    PendingDecision | CompleteDecision | IssuesDecision,
    Field(discriminator="type"),
]


class DecisionRecord(BaseModel):
    """A posted decision and when it was posted."""
    decision: Decision
    timestamp: datetime


# =============================================================================
# REVIEW ATTEMPTS
# =============================================================================


class PendingOutcome(BaseModel):
    type: Literal["pending"] = "pending"


class SuccessOutcome(BaseModel):
    type: Literal["success"] = "success"
    decision_type: str
    blocks_needed: int


class NotSpawnedOutcome(BaseModel):
    type: Literal["not_spawned"] = "not_spawned"


class NoDecisionOutcome(BaseModel):
    type: Literal["no_decision"] = "no_decision"


class BadSessionIdOutcome(BaseModel):
    type: Literal["bad_session_id"] = "bad_session_id"


AttemptOutcome = Annotated[
    PendingOutcome | SuccessOutcome | NotSpawnedOutcome | NoDecisionOutcome | BadSessionIdOutcome,
    Field(discriminator="type"),
]


class ReviewAttempt(BaseModel):
    """One block message shown to the agent, tracked for template statistics."""
    template_id: str
    timestamp: datetime
    outcome: AttemptOutcome = Field(default_factory=PendingOutcome)


# =============================================================================
# GATE CONTEXT
# =============================================================================


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _truncate_value(value: Any, budget: int) -> Any:
    """Recursively shrink a JSON value towards a byte budget."""
    if isinstance(value, str):
        size = len(value.encode("utf-8"))
        if size > budget:
            keep = min(budget, _MAX_STRING_PREVIEW)
            return f"{value[:keep]}... [truncated, {size} bytes total]"
        return value
    if isinstance(value, dict):
        per_key = budget // max(len(value), 1)
        return {k: _truncate_value(v, per_key) for k, v in value.items()}
    if isinstance(value, list) and len(value) > _MAX_ARRAY_ITEMS:
        kept = [_truncate_value(v, budget // _MAX_ARRAY_ITEMS) for v in value[:_MAX_ARRAY_ITEMS]]
        kept.append(f"... [{len(value) - _MAX_ARRAY_ITEMS} more items]")
        return kept
    return value


class TruncatedInput(BaseModel):
    """Size-capped copy of a tool's arguments."""
    value: Any = None
    truncated: bool = False
    original_hash: str | None = None
    original_size: int | None = None

    @model_validator(mode="after")
    def _check_truncation_fields(self) -> "TruncatedInput":
        has_original = self.original_hash is not None and self.original_size is not None
        if self.truncated != has_original:
            raise ValueError("truncated must be set exactly when original_hash and original_size are")
        return self

    @classmethod
    def from_value(cls, value: Any) -> "TruncatedInput":
        serialized = _compact_json(value).encode("utf-8")
        if len(serialized) <= MAX_INPUT_BYTES:
            return cls(value=value)
        return cls(
            value=_truncate_value(value, MAX_INPUT_BYTES),
            truncated=True,
            original_hash=hashlib.sha256(serialized).hexdigest(),
            original_size=len(serialized),
        )


class GateTrigger(BaseModel):
    """Context of the last gate-blocked action, kept for the reviewer."""
    tool_name: str
    tool_input: TruncatedInput = Field(default_factory=TruncatedInput)
    triggered_at: datetime
    pattern_matched: str


# =============================================================================
# TRACE
# =============================================================================


class TraceEvent(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime
    event_type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# SESSION
# =============================================================================


class ReviewState(BaseModel):
    """Review lifecycle for one session. Changed only through core.transitions."""
    enabled: bool = False
    decision: Decision = Field(default_factory=PendingDecision)
    decision_history: list[DecisionRecord] = Field(default_factory=list)
    user_prompts: list[str] = Field(default_factory=list)
    gate_trigger: GateTrigger | None = None
    gate_approved_at: datetime | None = None
    last_prompt_at: datetime | None = None
    review_started_at: datetime | None = None
    block_count: int = Field(0, ge=0)
    circuit_breaker_tripped: bool = False
    circuit_breaker_tripped_at: datetime | None = None
    attempts: list[ReviewAttempt] = Field(default_factory=list)

    @property
    def decided_at(self) -> datetime | None:
        """When the current decision was posted."""
        if not self.decision_history:
            return None
        return self.decision_history[-1].timestamp

    @property
    def is_pending(self) -> bool:
        return isinstance(self.decision, PendingDecision)


class SessionState(BaseModel):
    session_id: str
    review: ReviewState = Field(default_factory=ReviewState)
    trace: list[TraceEvent] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, session_id: str, now: datetime) -> "SessionState":
        return cls(session_id=session_id, created_at=now, updated_at=now)

    @property
    def review_active(self) -> bool:
        """Review is owed and no outcome has been posted yet."""
        return self.review.enabled and self.review.is_pending


__all__ = [
    'MAX_INPUT_BYTES',
    'AttemptOutcome',
    'BadSessionIdOutcome',
    'CompleteDecision',
    'Decision',
    'DecisionRecord',
    'EventType',
    'GateTrigger',
    'IssuesDecision',
    'NoDecisionOutcome',
    'NotSpawnedOutcome',
    'PendingDecision',
    'PendingOutcome',
    'ReviewAttempt',
    'ReviewState',
    'SessionState',
    'SuccessOutcome',
    'TraceEvent',
    'TruncatedInput',
]

"""
Approval Evaluator
==================

Decides whether a stored Complete decision still authorizes a gated tool.

Scopes:
- session: any unexpired approval covers the rest of the session
- prompt:  the approval must postdate the latest user prompt
- tool:    never; every gated call needs its own review
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from reviewgate.core.state import CompleteDecision, ReviewState

if TYPE_CHECKING:
    from reviewgate.config.settings import GatesConfig


@dataclass(frozen=True)
class ApprovalVerdict:
    allowed: bool
    reason: str


def effective_prompt_at(review: ReviewState, approved_at: datetime) -> datetime | None:
    """
    The prompt time an approval is compared against.

    A prompt sent while the review was already running (after it started
    and before the approval) is replaced by the review start time. Both
    times precede the approval, so the verdict is the same as comparing
    against the prompt itself; the substitution only keeps the recorded
    comparison point at the start of the review cycle.
    """
    started = review.review_started_at
    last_prompt = review.last_prompt_at
    if started is not None and last_prompt is not None and started < last_prompt < approved_at:
        return started
    return last_prompt


def evaluate_approval(review: ReviewState, gates: GatesConfig, now: datetime) -> ApprovalVerdict:
    """Admission decision for a tool call that already matched a gate pattern."""
    if review.circuit_breaker_tripped:
        return ApprovalVerdict(True, "circuit_breaker")

    approved_at = review.gate_approved_at
    if not isinstance(review.decision, CompleteDecision) or approved_at is None:
        return ApprovalVerdict(False, "not_approved")

    ttl = gates.approval_ttl_seconds
    if ttl is not None and now > approved_at + timedelta(seconds=ttl):
        return ApprovalVerdict(False, "expired")

    scope = gates.approval_scope.value
    if scope == "session":
        return ApprovalVerdict(True, "approved")
    if scope == "tool":
        return ApprovalVerdict(False, "tool_scope")

    prompt_at = effective_prompt_at(review, approved_at)
    if prompt_at is None or approved_at > prompt_at:
        return ApprovalVerdict(True, "approved")
    return ApprovalVerdict(False, "prompt_scope")

"""
Review State Transitions
========================

Pure functions that take the current ReviewState and return the next one.
Inputs are never mutated, so every step can be unit tested without a store.

    Idle     --review prompt-->      Pending
    Idle     --gated action-->       Pending
    Pending  --finish attempted-->   Blocked
    Blocked  --Complete posted-->    Approved
    Blocked  --Issues posted-->      Pending
    Approved --review prompt-->      Pending
    Pending/Blocked --breaker-->     Idle   (see circuit_breaker.trip)
"""

from datetime import datetime

from .state import (
    AttemptOutcome,
    CompleteDecision,
    Decision,
    DecisionRecord,
    GateTrigger,
    PendingDecision,
    PendingOutcome,
    ReviewAttempt,
    ReviewState,
    SuccessOutcome,
)


def record_prompt(review: ReviewState, now: datetime) -> ReviewState:
    """Every prompt updates last_prompt_at, whether or not it starts a review."""
    return review.model_copy(update={"last_prompt_at": now})


def start_prompt_review(review: ReviewState, prompt: str, now: datetime) -> ReviewState:
    return review.model_copy(update={
        "enabled": True,
        "decision": PendingDecision(),
        "user_prompts": [*review.user_prompts, prompt],
        "last_prompt_at": now,
    })


def start_gate_review(review: ReviewState, trigger: GateTrigger, now: datetime) -> ReviewState:
    """
    A gated action was denied. A stale Complete no longer counts, but posted
    Issues stay so the next finish attempt still shows the remediation message.
    """
    update = {
        "enabled": True,
        "gate_trigger": trigger,
        "review_started_at": now,
    }
    if isinstance(review.decision, CompleteDecision):
        update["decision"] = PendingDecision()
    return review.model_copy(update=update)


def count_block(review: ReviewState) -> ReviewState:
    return review.model_copy(update={"block_count": review.block_count + 1})


def record_attempt(review: ReviewState, template_id: str, now: datetime) -> ReviewState:
    attempt = ReviewAttempt(template_id=template_id, timestamp=now)
    return review.model_copy(update={"attempts": [*review.attempts, attempt]})


def resolve_attempt(
    review: ReviewState,
    outcome: AttemptOutcome,
    include_failed: bool = False,
) -> ReviewState:
    """
    Set the outcome of the most recent unresolved attempt.

    With ``include_failed`` an attempt already marked as a failure may be
    upgraded, which is how a reviewer that retries after being told it
    forgot to post still counts as a success.
    """
    for index in range(len(review.attempts) - 1, -1, -1):
        current = review.attempts[index].outcome
        if isinstance(current, PendingOutcome) or (
            include_failed and not isinstance(current, SuccessOutcome)
        ):
            attempts = list(review.attempts)
            attempts[index] = attempts[index].model_copy(update={"outcome": outcome})
            return review.model_copy(update={"attempts": attempts})
    return review


def apply_decision(review: ReviewState, decision: Decision, now: datetime) -> ReviewState:
    """
    Record a reviewer outcome.

    Complete sets the approval timestamp and disables review; Issues keeps
    review enabled so the next finish attempt blocks with the remediation
    message.
    """
    if isinstance(decision, PendingDecision):
        raise ValueError("a pending decision cannot be posted")

    update = {
        "decision": decision,
        "decision_history": [*review.decision_history, DecisionRecord(decision=decision, timestamp=now)],
    }
    if isinstance(decision, CompleteDecision):
        update["gate_approved_at"] = now
        update["enabled"] = False
    else:
        update["enabled"] = True

    next_review = review.model_copy(update=update)
    outcome = SuccessOutcome(decision_type=decision.type, blocks_needed=review.block_count)
    return resolve_attempt(next_review, outcome, include_failed=True)

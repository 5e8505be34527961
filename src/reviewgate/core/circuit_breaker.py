"""Circuit Breaker: forces progress when a session keeps getting blocked."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .state import NotSpawnedOutcome, PendingOutcome, ReviewState

if TYPE_CHECKING:
    from reviewgate.config.settings import CircuitBreakerConfig

logger = logging.getLogger(__name__)


def should_trip(review: ReviewState, config: CircuitBreakerConfig) -> bool:
    """True if the breaker is already open or the block budget is spent."""
    return review.circuit_breaker_tripped or review.block_count >= config.max_blocks


def trip(review: ReviewState, now: datetime) -> ReviewState:
    """
    Open the breaker: review is disabled and the agent may finish.

    Attempts still pending at this point never got a reviewer, so they are
    marked not_spawned for the template statistics.
    """
    attempts = [
        a.model_copy(update={"outcome": NotSpawnedOutcome()}) if isinstance(a.outcome, PendingOutcome) else a
        for a in review.attempts
    ]
    if not review.circuit_breaker_tripped:
        logger.warning("Circuit breaker: CLOSED -> OPEN (%s blocks)", review.block_count)
    return review.model_copy(update={
        "circuit_breaker_tripped": True,
        "circuit_breaker_tripped_at": review.circuit_breaker_tripped_at or now,
        "enabled": False,
        "attempts": attempts,
    })


def maybe_reset(review: ReviewState, config: CircuitBreakerConfig, now: datetime) -> ReviewState:
    """Close a tripped breaker once the cooldown has elapsed."""
    if not review.circuit_breaker_tripped:
        return review
    tripped_at = review.circuit_breaker_tripped_at
    if tripped_at is not None and now - tripped_at < timedelta(seconds=config.cooldown_seconds):
        return review
    logger.info("Circuit breaker: OPEN -> CLOSED (cooldown elapsed)")
    return review.model_copy(update={
        "circuit_breaker_tripped": False,
        "circuit_breaker_tripped_at": None,
        "block_count": 0,
    })

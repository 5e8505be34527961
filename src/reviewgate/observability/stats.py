"""Template statistics: how often each block message got a real review."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from reviewgate.core.exceptions import ReviewGateError
from reviewgate.core.state import (
    BadSessionIdOutcome,
    NoDecisionOutcome,
    NotSpawnedOutcome,
    PendingOutcome,
    SuccessOutcome,
)
from reviewgate.persistence.repositories import SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class TemplateStats:
    success_count: int = 0
    total_blocks: int = 0
    not_spawned: int = 0
    no_decision: int = 0
    bad_session_id: int = 0
    pending: int = 0

    def record(self, outcome: Any) -> None:
        if isinstance(outcome, SuccessOutcome):
            self.success_count += 1
            self.total_blocks += outcome.blocks_needed
        elif isinstance(outcome, NotSpawnedOutcome):
            self.not_spawned += 1
        elif isinstance(outcome, NoDecisionOutcome):
            self.no_decision += 1
        elif isinstance(outcome, BadSessionIdOutcome):
            self.bad_session_id += 1
        elif isinstance(outcome, PendingOutcome):
            self.pending += 1

    @property
    def failure_count(self) -> int:
        return self.not_spawned + self.no_decision + self.bad_session_id

    @property
    def success_rate(self) -> float:
        """Percentage of resolved attempts that ended in a decision."""
        resolved = self.success_count + self.failure_count
        return self.success_count / resolved * 100.0 if resolved else 0.0

    @property
    def avg_blocks(self) -> float:
        return self.total_blocks / self.success_count if self.success_count else 0.0


@dataclass
class StatsReport:
    days: int
    templates: dict[str, TemplateStats] = field(default_factory=dict)
    sessions_analyzed: int = 0
    sessions_with_attempts: int = 0


def collect_template_stats(repository: SessionRepository, days: int, now: datetime) -> StatsReport:
    """Aggregate review attempts of sessions created in the last ``days`` days."""
    cutoff = now - timedelta(days=days)
    report = StatsReport(days=days)

    for summary in repository.list():
        if summary.created_at < cutoff:
            continue
        report.sessions_analyzed += 1
        try:
            state = repository.get(summary.session_id)
        except ReviewGateError as e:
            logger.warning("Skipping session %s: %s", summary.session_id, e.message)
            continue
        if state is None or not state.review.attempts:
            continue

        report.sessions_with_attempts += 1
        for attempt in state.review.attempts:
            report.templates.setdefault(attempt.template_id, TemplateStats()).record(attempt.outcome)

    return report

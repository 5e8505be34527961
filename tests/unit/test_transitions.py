"""Tests for the pure review state transition functions."""

from datetime import UTC, datetime, timedelta

import pytest

from reviewgate.core.state import (
    CompleteDecision,
    GateTrigger,
    IssuesDecision,
    NoDecisionOutcome,
    NotSpawnedOutcome,
    PendingDecision,
    PendingOutcome,
    ReviewAttempt,
    ReviewState,
    SuccessOutcome,
)
from reviewgate.core.transitions import (
    apply_decision,
    count_block,
    record_attempt,
    record_prompt,
    resolve_attempt,
    start_gate_review,
    start_prompt_review,
)

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class TestPromptTransitions:

    def test_record_prompt_only_sets_timestamp(self):
        review = ReviewState()
        updated = record_prompt(review, T0)
        assert updated.last_prompt_at == T0
        assert updated.enabled is False
        assert review.last_prompt_at is None

    def test_start_prompt_review_resets_decision(self):
        review = ReviewState(decision=CompleteDecision(summary="old"), user_prompts=["#review first"])
        updated = start_prompt_review(review, "#review second", T0)
        assert updated.enabled is True
        assert isinstance(updated.decision, PendingDecision)
        assert updated.user_prompts == ["#review first", "#review second"]
        assert review.user_prompts == ["#review first"]


class TestGateTransitions:

    def test_start_gate_review(self):
        trigger = GateTrigger(tool_name="close_issue", triggered_at=T0, pattern_matched="close*")
        updated = start_gate_review(ReviewState(decision=CompleteDecision(summary="x")), trigger, T0)
        assert updated.enabled is True
        assert updated.review_started_at == T0
        assert updated.gate_trigger == trigger
        assert isinstance(updated.decision, PendingDecision)

    def test_gate_review_keeps_posted_issues(self):
        trigger = GateTrigger(tool_name="close_issue", triggered_at=T0, pattern_matched="close*")
        issues = IssuesDecision(summary="bad", message_to_agent="fix test_x")
        updated = start_gate_review(ReviewState(decision=issues), trigger, T0)
        assert updated.enabled is True
        assert updated.decision == issues

    def test_gate_review_leaves_breaker_alone(self):
        trigger = GateTrigger(tool_name="close_issue", triggered_at=T0, pattern_matched="close*")
        review = ReviewState(block_count=2)
        updated = start_gate_review(review, trigger, T0)
        assert updated.block_count == 2
        assert updated.circuit_breaker_tripped is False


class TestBlockTransitions:

    def test_block_counts_and_records_attempt(self):
        updated = record_attempt(count_block(ReviewState(enabled=True)), "v2", T0)
        assert updated.block_count == 1
        assert len(updated.attempts) == 1
        assert updated.attempts[0].template_id == "v2"
        assert isinstance(updated.attempts[0].outcome, PendingOutcome)

    def test_count_block_does_not_record(self):
        updated = count_block(ReviewState())
        assert updated.block_count == 1
        assert updated.attempts == []


class TestApplyDecision:

    def _blocked(self) -> ReviewState:
        return record_attempt(count_block(ReviewState(enabled=True)), "default", T0)

    def test_complete_approves_and_disables(self):
        later = T0 + timedelta(minutes=1)
        updated = apply_decision(self._blocked(), CompleteDecision(summary="ok"), later)
        assert updated.gate_approved_at == later
        assert updated.enabled is False
        assert updated.decided_at == later
        assert updated.attempts[0].outcome == SuccessOutcome(decision_type="complete", blocks_needed=1)

    def test_issues_keeps_review_enabled(self):
        updated = apply_decision(self._blocked(), IssuesDecision(summary="bad", message_to_agent="fix it"), T0)
        assert updated.enabled is True
        assert updated.gate_approved_at is None
        assert updated.decision.message_to_agent == "fix it"

    def test_history_is_append_only(self):
        review = apply_decision(self._blocked(), IssuesDecision(summary="1"), T0)
        review = apply_decision(review, CompleteDecision(summary="2"), T0 + timedelta(seconds=5))
        assert [r.decision.summary for r in review.decision_history] == ["1", "2"]

    def test_pending_cannot_be_posted(self):
        with pytest.raises(ValueError):
            apply_decision(self._blocked(), PendingDecision(), T0)

    def test_retry_after_no_decision_upgrades_attempt(self):
        review = resolve_attempt(self._blocked(), NoDecisionOutcome())
        updated = apply_decision(review, CompleteDecision(summary="ok"), T0)
        assert isinstance(updated.attempts[0].outcome, SuccessOutcome)

    def test_input_not_mutated(self):
        review = self._blocked()
        apply_decision(review, CompleteDecision(summary="ok"), T0)
        assert review.is_pending
        assert review.decision_history == []


class TestResolveAttempt:

    def test_resolves_latest_pending(self):
        review = ReviewState(attempts=[
            ReviewAttempt(template_id="a", timestamp=T0),
            ReviewAttempt(template_id="b", timestamp=T0),
        ])
        updated = resolve_attempt(review, NotSpawnedOutcome())
        assert isinstance(updated.attempts[0].outcome, PendingOutcome)
        assert isinstance(updated.attempts[1].outcome, NotSpawnedOutcome)

    def test_no_pending_attempt_is_noop(self):
        review = ReviewState()
        assert resolve_attempt(review, NoDecisionOutcome()) is review

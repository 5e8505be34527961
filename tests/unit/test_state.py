"""
Tests for the session state model: JSON round-trip, tagged decisions and
tool input truncation.
"""

import hashlib
import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from reviewgate.core.state import (
    MAX_INPUT_BYTES,
    CompleteDecision,
    DecisionRecord,
    EventType,
    GateTrigger,
    IssuesDecision,
    PendingDecision,
    ReviewAttempt,
    ReviewState,
    SessionState,
    SuccessOutcome,
    TraceEvent,
    TruncatedInput,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class TestSessionStateRoundTrip:

    def test_new_session_defaults(self):
        state = SessionState.new("abc", NOW)
        assert state.created_at == state.updated_at == NOW
        assert state.review.enabled is False
        assert isinstance(state.review.decision, PendingDecision)
        assert state.review.block_count == 0
        assert state.trace == []
        assert state.review_active is False

    def test_full_state_survives_json(self):
        review = ReviewState(
            enabled=True,
            decision=IssuesDecision(summary="tests fail", message_to_agent="fix test_x"),
            decision_history=[
                DecisionRecord(decision=CompleteDecision(summary="ok", second_opinions="codex agreed"), timestamp=NOW),
            ],
            user_prompts=["#review please"],
            gate_trigger=GateTrigger(
                tool_name="Bash:git push",
                tool_input=TruncatedInput.from_value({"command": "git push"}),
                triggered_at=NOW,
                pattern_matched="Bash:git push*",
            ),
            gate_approved_at=NOW,
            last_prompt_at=NOW,
            review_started_at=NOW,
            block_count=2,
            attempts=[ReviewAttempt(template_id="v1", timestamp=NOW, outcome=SuccessOutcome(decision_type="complete", blocks_needed=1))],
        )
        state = SessionState(
            session_id="abc",
            review=review,
            trace=[TraceEvent(timestamp=NOW, event_type=EventType.GATE_BLOCKED, payload={"tool": "Bash:git push"})],
            created_at=NOW,
            updated_at=NOW,
        )

        restored = SessionState.model_validate_json(state.model_dump_json())
        assert restored == state

    def test_decision_is_tagged_by_type(self):
        review = ReviewState(decision=CompleteDecision(summary="done"))
        data = json.loads(review.model_dump_json())
        assert data["decision"] == {"type": "complete", "summary": "done", "second_opinions": None}

        parsed = ReviewState.model_validate({"decision": {"type": "issues", "summary": "bad"}})
        assert isinstance(parsed.decision, IssuesDecision)

    def test_unknown_decision_type_rejected(self):
        with pytest.raises(ValidationError):
            ReviewState.model_validate({"decision": {"type": "maybe"}})

    def test_negative_block_count_rejected(self):
        with pytest.raises(ValidationError):
            ReviewState(block_count=-1)

    def test_decided_at_uses_last_history_entry(self):
        later = NOW.replace(hour=13)
        review = ReviewState(decision_history=[
            DecisionRecord(decision=IssuesDecision(summary="a"), timestamp=NOW),
            DecisionRecord(decision=CompleteDecision(summary="b"), timestamp=later),
        ])
        assert review.decided_at == later
        assert ReviewState().decided_at is None

    def test_trace_events_get_unique_ids(self):
        a = TraceEvent(timestamp=NOW, event_type=EventType.SESSION_START)
        b = TraceEvent(timestamp=NOW, event_type=EventType.SESSION_START)
        assert a.id != b.id


class TestTruncatedInput:

    def test_small_input_kept_verbatim(self):
        value = {"command": "ls -la"}
        t = TruncatedInput.from_value(value)
        assert t.value == value
        assert t.truncated is False
        assert t.original_hash is None
        assert t.original_size is None

    def test_large_string_truncated_with_hash(self):
        content = "x" * 20_000
        value = {"content": content}
        t = TruncatedInput.from_value(value)

        serialized = json.dumps(value, separators=(",", ":")).encode()
        assert t.truncated is True
        assert t.original_size == len(serialized)
        assert t.original_hash == hashlib.sha256(serialized).hexdigest()
        assert t.value["content"].startswith("x" * 200)
        assert t.value["content"].endswith("... [truncated, 20000 bytes total]")

    def test_long_array_capped_at_ten_items(self):
        value = ["y" * 2000 for _ in range(25)]
        t = TruncatedInput.from_value(value)
        assert t.truncated is True
        assert len(t.value) == 11
        assert t.value[-1] == "... [15 more items]"

    def test_truncated_result_is_smaller(self):
        value = {"a": "z" * 50_000, "b": list(range(5000))}
        t = TruncatedInput.from_value(value)
        assert len(json.dumps(t.value).encode()) < MAX_INPUT_BYTES

    def test_null_input(self):
        t = TruncatedInput.from_value(None)
        assert t.value is None
        assert t.truncated is False

    def test_truncated_flag_requires_hash_and_size(self):
        with pytest.raises(ValidationError):
            TruncatedInput(value="x", truncated=True)
        with pytest.raises(ValidationError):
            TruncatedInput(value="x", truncated=False, original_hash="abc", original_size=3)

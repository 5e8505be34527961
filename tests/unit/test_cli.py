"""Tests for the reviewgate command line."""

import json
import warnings
from datetime import UTC, datetime, timedelta

import pytest
from click.testing import CliRunner

from reviewgate.cli import _preview, cli
from reviewgate.core.state import (
    EventType,
    GateTrigger,
    ReviewAttempt,
    SessionState,
    SuccessOutcome,
    TraceEvent,
    TruncatedInput,
)
from reviewgate.persistence import FileSessionRepository


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def repo(isolated_home):
    return FileSessionRepository(isolated_home)


def _last_json(output: str) -> dict:
    return json.loads(output.strip().splitlines()[-1])


def _recent_session(session_id: str, **review) -> SessionState:
    now = datetime.now(tz=UTC)
    state = SessionState.new(session_id, now - timedelta(hours=1))
    for key, value in review.items():
        setattr(state.review, key, value)
    return state


class TestHookCommand:

    def test_review_cycle(self, runner, repo):
        stdin = json.dumps({"session_id": "s1", "cwd": "/tmp", "prompt": "#review ship it"})
        result = runner.invoke(cli, ["hook", "user-prompt"], input=stdin)
        assert result.exit_code == 0
        assert _last_json(result.output) == {"decision": "approve"}

        stop = json.dumps({"session_id": "s1", "cwd": "/tmp"})
        result = runner.invoke(cli, ["hook", "stop"], input=stop)
        blocked = _last_json(result.output)
        assert blocked["decision"] == "block"
        assert "SESSION_ID=s1" in blocked["reason"]

        result = runner.invoke(cli, ["decide", "s1", "COMPLETE", "looks good"])
        assert result.exit_code == 0
        assert "Decision recorded: COMPLETE for session s1" in result.output

        result = runner.invoke(cli, ["hook", "stop"], input=stop)
        assert _last_json(result.output) == {"decision": "approve"}

    def test_invalid_config_fails_open(self, runner, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("circuit_breaker: {max_blocks: 0}")
        stdin = json.dumps({"session_id": "s1", "cwd": "/tmp"})
        result = runner.invoke(cli, ["--config", str(bad), "hook", "stop"], input=stdin)
        assert result.exit_code == 0
        assert _last_json(result.output) == {"decision": "approve"}

    def test_reads_stdin_without_deprecation_warnings(self, runner):
        stdin = json.dumps({"session_id": "s1", "cwd": "/tmp"})
        with warnings.catch_warnings():
            warnings.filterwarnings("error", message=".*get_text_stream", category=DeprecationWarning)
            result = runner.invoke(cli, ["hook", "session-end"], input=stdin)
        assert result.exit_code == 0
        assert _last_json(result.output) == {"decision": "approve"}

    def test_garbage_stdin(self, runner):
        result = runner.invoke(cli, ["hook", "pre-tool-use"], input="garbage")
        assert result.exit_code == 0
        assert _last_json(result.output)["hookSpecificOutput"]["permissionDecision"] == "allow"


class TestDecideCommand:

    def test_issues_with_message(self, runner, repo):
        repo.put(_recent_session("s1", enabled=True))
        result = runner.invoke(cli, ["decide", "s1", "issues", "broken", "--message", "fix the test"])
        assert result.exit_code == 0
        decision = repo.get("s1").review.decision
        assert decision.type == "issues"
        assert decision.message_to_agent == "fix the test"

    def test_unknown_session(self, runner):
        result = runner.invoke(cli, ["decide", "ghost", "COMPLETE", "ok"])
        assert result.exit_code == 1
        assert "reviewgate: error:" in result.output
        assert "ghost" in result.output

    def test_invalid_decision(self, runner, repo):
        repo.put(_recent_session("s1"))
        result = runner.invoke(cli, ["decide", "s1", "MAYBE", "hmm"])
        assert result.exit_code == 1
        assert "MAYBE" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yaml"), "decide", "s1", "COMPLETE", "ok"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestInspectionCommands:

    def test_context(self, runner, repo):
        state = _recent_session("s1", enabled=True, user_prompts=["#review first\nmore", "second"])
        state.review.gate_trigger = GateTrigger(
            tool_name="Bash",
            tool_input=TruncatedInput.from_value({"command": "git push"}),
            triggered_at=state.created_at,
            pattern_matched="Bash:git push*",
        )
        repo.put(state)

        result = runner.invoke(cli, ["context", "s1"])
        assert result.exit_code == 0
        assert "Session: s1" in result.output
        assert "Review enabled: true" in result.output
        assert "Decision: Pending" in result.output
        assert "Pattern: Bash:git push*" in result.output
        assert '"command": "git push"' in result.output
        assert "[1] #review first [...]" in result.output
        assert "[2] second" in result.output

    def test_context_missing(self, runner):
        result = runner.invoke(cli, ["context", "ghost"])
        assert result.exit_code == 1
        assert "reviewgate: error:" in result.output

    def test_debug_dumps_json(self, runner, repo):
        repo.put(_recent_session("s1"))
        result = runner.invoke(cli, ["debug", "s1"])
        assert result.exit_code == 0
        assert json.loads(result.output)["session_id"] == "s1"

    def test_trace(self, runner, repo):
        state = _recent_session("s1")
        state.trace.append(TraceEvent(
            timestamp=state.created_at, event_type=EventType.GATE_BLOCKED, payload={"tool": "Bash:git push"},
        ))
        repo.put(state)

        result = runner.invoke(cli, ["trace", "s1"])
        assert "Events: 1" in result.output
        assert "gate_blocked" in result.output
        assert "Bash:git push" not in result.output

        verbose = runner.invoke(cli, ["trace", "s1", "-v"])
        assert "Bash:git push" in verbose.output

    def test_list(self, runner, repo):
        result = runner.invoke(cli, ["list"])
        assert "No sessions found." in result.output

        repo.put(_recent_session("s1", user_prompts=["hello world"]))
        repo.put(_recent_session("s2", enabled=True))
        result = runner.invoke(cli, ["list", "--limit", "5"])
        assert result.exit_code == 0
        assert "hello world" in result.output
        assert "active" in result.output
        assert "Showing 2 session(s)" in result.output


class TestMaintenanceCommands:

    def test_clean(self, runner, repo):
        old = SessionState.new("old", datetime.now(tz=UTC) - timedelta(days=30))
        repo.put(old)
        repo.put(_recent_session("new"))

        result = runner.invoke(cli, ["clean"])
        assert result.exit_code == 0
        assert "Removed 1 session(s)" in result.output
        assert repo.get("new") is not None

        result = runner.invoke(cli, ["clean", "--all"])
        assert "Removed 1 session(s)" in result.output

    def test_clean_bad_duration(self, runner):
        result = runner.invoke(cli, ["clean", "--before", "soon"])
        assert result.exit_code == 1
        assert "Invalid duration" in result.output

    def test_stats(self, runner, repo):
        result = runner.invoke(cli, ["stats"])
        assert "No template statistics available for the last 30 days." in result.output

        state = _recent_session("s1")
        state.review.attempts.append(ReviewAttempt(
            template_id="v1",
            timestamp=state.created_at,
            outcome=SuccessOutcome(decision_type="complete", blocks_needed=2),
        ))
        repo.put(state)

        result = runner.invoke(cli, ["stats", "--days", "7"])
        assert "Template Performance (last 7 days):" in result.output
        assert "v1" in result.output
        assert "100.0%" in result.output
        assert "Sessions with review attempts: 1" in result.output


class TestPreview:

    def test_forms(self):
        assert _preview(None, 10) == "(no prompt)"
        assert _preview("short", 10) == "short"
        assert _preview("a" * 20, 10) == "a" * 10 + "..."
        assert _preview("one\ntwo", 10) == "one [...]"

"""
Hook Handlers
=============

One method per lifecycle event. Each method loads the session from the
injected repository, derives the next ReviewState through the transition
functions, appends a trace event and writes the session back.

Infrastructure failures (unreadable or unwritable session records) never
block the agent: the handler logs a warning and approves, putting the
warning in ``systemMessage``. Only review decisions block.
"""

import re
import shutil
from datetime import UTC, datetime, timedelta
from functools import partial
from typing import Any, Callable, Optional

from reviewgate.config.settings import ReviewMode, Settings
from reviewgate.core import circuit_breaker
from reviewgate.core.exceptions import ReviewGateError
from reviewgate.core.state import (
    AttemptOutcome,
    BadSessionIdOutcome,
    CompleteDecision,
    EventType,
    GateTrigger,
    IssuesDecision,
    NoDecisionOutcome,
    ReviewState,
    SessionState,
    TraceEvent,
    TruncatedInput,
)
from reviewgate.core.structured_logger import SessionContext, get_logger
from reviewgate.core.trace import TraceRecorder
from reviewgate.core.transitions import (
    count_block,
    record_attempt,
    record_prompt,
    resolve_attempt,
    start_gate_review,
    start_prompt_review,
)
from reviewgate.gates import evaluate_approval, find_matching_pattern, format_tool_key
from reviewgate.persistence.repositories import SessionRepository
from reviewgate.templates import load_template, render_template, select_template

from .input import HookInput
from .output import HookOutput, PreToolUseOutput

logger = get_logger("HookHandler")

_SESSION_ID_RE = re.compile(r"SESSION_ID[=:]\s*([A-Za-z0-9_-]+)")

# Clock skew allowed between the reviewer finishing and the decision timestamp
DECISION_TOLERANCE = timedelta(seconds=5)
# Assumed reviewer start when the runtime does not report one
DEFAULT_REVIEWER_WINDOW = timedelta(hours=1)

DEFAULT_ISSUES_MESSAGE = "Issues were found. Please address them and try again."


def extract_session_id(prompt: Optional[str]) -> Optional[str]:
    """Session id from ``SESSION_ID=<id>`` or ``SESSION_ID: <id>`` in a reviewer prompt."""
    if not prompt:
        return None
    match = _SESSION_ID_RE.search(prompt)
    return match.group(1) if match else None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _fmt(ts: datetime) -> str:
    return ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class HookHandler:
    """
    Evaluates hook events against stored session state.

    Args:
        repository: Session store
        settings: Loaded configuration
        clock: Returns the current UTC time
        template_loader: Maps a template id to its text
        command_exists: Reports whether an executable is on PATH
    """

    def __init__(
        self,
        repository: SessionRepository,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
        template_loader: Optional[Callable[[str], str]] = None,
        command_exists: Optional[Callable[[str], bool]] = None,
    ):
        self.repository = repository
        self.settings = settings
        self.clock = clock
        self.recorder = TraceRecorder(settings.trace.max_events)
        self.template_loader = template_loader or partial(load_template, templates_dir=settings.templates_dir)
        self.command_exists = command_exists or (lambda name: shutil.which(name) is not None)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _load_or_new(self, session_id: str, now: datetime) -> SessionState:
        state = self.repository.get(session_id)
        return state if state is not None else SessionState.new(session_id, now)

    def _event(self, event_type: EventType, now: datetime, **payload: Any) -> TraceEvent:
        return self.recorder.event(event_type, now, payload)

    def _commit(
        self,
        state: SessionState,
        review: ReviewState,
        event: TraceEvent,
        now: datetime,
    ) -> SessionState:
        updated = state.model_copy(update={
            "review": review,
            "trace": self.recorder.append(state.trace, event),
            "updated_at": now,
        })
        self.repository.put(updated)
        return updated

    @staticmethod
    def _storage_warning(hook: str, error: ReviewGateError) -> str:
        logger.warning("Storage error, failing open", hook=hook, error=error.to_dict())
        return f"reviewgate: warning: {error.message}; continuing without review"

    @property
    def reviewer_agent(self) -> str:
        return self.settings.review.reviewer_agent

    def _second_opinion_context(self) -> Optional[str]:
        models = self.settings.external_models
        available = [
            label
            for label, command in (("codex", models.codex), ("gemini", models.gemini))
            if command and self.command_exists(command)
        ]
        if not available:
            return None
        return f"reviewgate second opinion sources: {' '.join(available)}"

    def _prompt_requests_review(self, prompt: str) -> bool:
        mode = self.settings.review.mode
        if mode == ReviewMode.ALWAYS:
            return True
        if mode == ReviewMode.NEVER:
            return False
        return prompt.lstrip().startswith(self.settings.review.trigger_prefix)

    # ------------------------------------------------------------------
    # session / prompt
    # ------------------------------------------------------------------

    def session_start(self, hook_input: HookInput) -> HookOutput:
        now = self.clock()
        with SessionContext(hook_input.session_id):
            try:
                existing = self.repository.get(hook_input.session_id)
                state = existing or SessionState.new(hook_input.session_id, now)
                event = self._event(
                    EventType.SESSION_START,
                    now,
                    source=hook_input.source,
                    cwd=str(hook_input.cwd),
                    resumed=existing is not None,
                )
                self._commit(state, state.review, event, now)
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("session-start", e))

        return HookOutput.approve(context=self._second_opinion_context())

    def user_prompt(self, hook_input: HookInput) -> HookOutput:
        now = self.clock()
        prompt = hook_input.prompt or ""
        with SessionContext(hook_input.session_id):
            try:
                state = self._load_or_new(hook_input.session_id, now)
                review = record_prompt(state.review, now)
                review = circuit_breaker.maybe_reset(review, self.settings.circuit_breaker, now)

                requested = self._prompt_requests_review(prompt)
                if requested:
                    review = start_prompt_review(review, prompt, now)
                    logger.info("Review requested by prompt")

                event = self._event(EventType.PROMPT_RECEIVED, now, prompt=prompt, review_requested=requested)
                self._commit(state, review, event, now)
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("user-prompt", e))

        return HookOutput.approve()

    # ------------------------------------------------------------------
    # tool gates
    # ------------------------------------------------------------------

    def _gate_message(self, session_id: str, tool_key: str, pattern: str) -> str:
        return (
            "Review required before this action.\n\n"
            f"Spawn **{self.reviewer_agent}** to review this session:\n\n"
            "```\n"
            f"SESSION_ID={session_id}\n\n"
            "## Summary\n"
            "[What you did and why]\n\n"
            "## Files Changed\n"
            "[List of modified files]\n"
            "```\n\n"
            f"Triggered by: `{tool_key}` (gate `{pattern}`)"
        )

    def pre_tool_use(self, hook_input: HookInput) -> PreToolUseOutput:
        gates = self.settings.review.gates
        if not gates.enabled:
            return PreToolUseOutput.allow()

        tool_key = format_tool_key(hook_input.tool_name, hook_input.tool_input)
        pattern = find_matching_pattern(tool_key, gates.tools)
        if pattern is None:
            return PreToolUseOutput.allow()

        now = self.clock()
        with SessionContext(hook_input.session_id):
            try:
                state = self._load_or_new(hook_input.session_id, now)
                verdict = evaluate_approval(state.review, gates, now)

                if verdict.allowed:
                    event = self._event(
                        EventType.GATE_ALLOWED, now, tool=tool_key, pattern=pattern, reason=verdict.reason
                    )
                    self._commit(state, state.review, event, now)
                    return PreToolUseOutput.allow()

                trigger = GateTrigger(
                    tool_name=tool_key,
                    tool_input=TruncatedInput.from_value(hook_input.tool_input),
                    triggered_at=now,
                    pattern_matched=pattern,
                )
                review = start_gate_review(state.review, trigger, now)
                event = self._event(
                    EventType.GATE_BLOCKED, now, tool=tool_key, pattern=pattern, reason=verdict.reason
                )
                self._commit(state, review, event, now)
            except ReviewGateError as e:
                return PreToolUseOutput.fail_open(self._storage_warning("pre-tool-use", e))

            logger.info("Gate blocked", tool=tool_key, pattern=pattern, reason=verdict.reason)
        return PreToolUseOutput.deny(self._gate_message(hook_input.session_id, tool_key, pattern))

    def post_tool_use(self, hook_input: HookInput) -> HookOutput:
        gates = self.settings.review.gates
        if not gates.enabled:
            return HookOutput.approve()

        tool_key = format_tool_key(hook_input.tool_name, hook_input.tool_input)
        pattern = find_matching_pattern(tool_key, gates.tools)
        if pattern is None:
            return HookOutput.approve()

        now = self.clock()
        with SessionContext(hook_input.session_id):
            try:
                state = self.repository.get(hook_input.session_id)
                if state is not None:
                    event = self._event(EventType.TOOL_COMPLETED, now, tool=tool_key, pattern=pattern)
                    self._commit(state, state.review, event, now)
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("post-tool-use", e))

        return HookOutput.approve()

    # ------------------------------------------------------------------
    # finish attempts
    # ------------------------------------------------------------------

    def _trip(self, state: SessionState, review: ReviewState, now: datetime) -> HookOutput:
        review = circuit_breaker.trip(review, now)
        event = self._event(EventType.STOP_HOOK_CALLED, now, outcome="circuit_breaker", block_count=review.block_count)
        self._commit(state, review, event, now)
        logger.warning("Circuit breaker tripped, allowing exit without review", block_count=review.block_count)
        return HookOutput.approve(
            context=(
                f"reviewgate: circuit breaker tripped after {review.block_count} blocks; "
                "exiting without review."
            )
        )

    def _issues_message(self, decision: IssuesDecision) -> str:
        message = decision.message_to_agent or DEFAULT_ISSUES_MESSAGE
        return (
            "Review found issues that need to be addressed:\n\n"
            f"{message}\n\n"
            f"After fixing, spawn {self.reviewer_agent} again to re-review."
        )

    def stop(self, hook_input: HookInput) -> HookOutput:
        now = self.clock()
        session_id = hook_input.session_id
        with SessionContext(session_id):
            try:
                state = self.repository.get(session_id)
                if state is None:
                    return HookOutput.approve()

                review = state.review
                if not review.enabled:
                    event = self._event(EventType.STOP_HOOK_CALLED, now, outcome="approve")
                    self._commit(state, review, event, now)
                    return HookOutput.approve()

                breaker = self.settings.circuit_breaker
                if circuit_breaker.should_trip(review, breaker):
                    return self._trip(state, review, now)

                decision = review.decision
                if isinstance(decision, CompleteDecision):
                    event = self._event(EventType.STOP_HOOK_CALLED, now, outcome="approve")
                    self._commit(state, review, event, now)
                    return HookOutput.approve()

                review = count_block(review)
                if circuit_breaker.should_trip(review, breaker):
                    return self._trip(state, review, now)

                template_id = select_template(self.settings.templates)
                review = record_attempt(review, template_id, now)
                if isinstance(decision, IssuesDecision):
                    reason = self._issues_message(decision)
                else:
                    reason = render_template(self.template_loader(template_id), session_id, self.reviewer_agent)

                event = self._event(
                    EventType.STOP_HOOK_CALLED,
                    now,
                    outcome="block",
                    decision=decision.type,
                    block_count=review.block_count,
                    template_id=template_id,
                )
                self._commit(state, review, event, now)
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("stop", e))

        return HookOutput.block(reason)

    # ------------------------------------------------------------------
    # reviewer sub-agent
    # ------------------------------------------------------------------

    def _mark_attempt(self, session_id: str, outcome: AttemptOutcome, now: datetime) -> None:
        state = self.repository.get(session_id)
        if state is None:
            return
        review = resolve_attempt(state.review, outcome)
        if review is not state.review:
            self.repository.put(state.model_copy(update={"review": review, "updated_at": now}))

    def subagent_stop(self, hook_input: HookInput) -> HookOutput:
        """
        Confirm the reviewer itself posted a decision while it was running.

        A decision timestamped before the reviewer started, or more than a
        few seconds after it finished, was posted by someone else (usually
        the agent under review approving its own work) and is rejected.
        """
        if hook_input.subagent_type != self.reviewer_agent:
            return HookOutput.approve()

        now = self.clock()
        agent = self.reviewer_agent
        session_id = extract_session_id(hook_input.subagent_prompt)

        if session_id is None:
            with SessionContext(hook_input.session_id):
                try:
                    self._mark_attempt(hook_input.session_id, BadSessionIdOutcome(), now)
                except ReviewGateError as e:
                    self._storage_warning("subagent-stop", e)
            return HookOutput.block(
                f"{agent} completed but SESSION_ID not found in prompt. "
                "The prompt must include SESSION_ID=<id>."
            )

        started = hook_input.subagent_started_at or now - DEFAULT_REVIEWER_WINDOW
        with SessionContext(session_id):
            try:
                state = self.repository.get(session_id)
                if state is None:
                    logger.warning("Reviewed session not found, failing open")
                    return HookOutput.fail_open(f"reviewgate: warning: session {session_id} not found")

                if state.review.is_pending:
                    self._mark_attempt(session_id, NoDecisionOutcome(), now)
                    return HookOutput.block(
                        f"{agent} completed but did not record a decision.\n\n"
                        f'Run: reviewgate decide {session_id} COMPLETE "summary"\n'
                        f' or: reviewgate decide {session_id} ISSUES "summary" --message "what to fix"'
                    )
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("subagent-stop", e))

            decided_at = state.review.decided_at or state.updated_at
            if decided_at < started:
                logger.warning("Decision predates reviewer", decided_at=decided_at, started=started)
                return HookOutput.block(
                    f"Decision timestamp ({_fmt(decided_at)}) is before {agent} started ({_fmt(started)}). "
                    f"Decision must be posted by {agent} during its execution."
                )
            if decided_at > now + DECISION_TOLERANCE:
                logger.warning("Decision postdates reviewer", decided_at=decided_at, ended=now)
                return HookOutput.block(
                    f"Decision timestamp ({_fmt(decided_at)}) is after {agent} ended ({_fmt(now)}). "
                    f"Decision must be posted by {agent} during its execution."
                )

        return HookOutput.approve()

    def session_end(self, hook_input: HookInput) -> HookOutput:
        now = self.clock()
        with SessionContext(hook_input.session_id):
            try:
                state = self.repository.get(hook_input.session_id)
                if state is not None:
                    event = self._event(EventType.SESSION_END, now, review_active=state.review_active)
                    self._commit(state, state.review, event, now)
            except ReviewGateError as e:
                return HookOutput.fail_open(self._storage_warning("session-end", e))

        return HookOutput.approve()

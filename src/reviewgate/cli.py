"""
reviewgate CLI: reviewgate hook | decide | context | list | debug | trace | clean | stats
"""
import json
import sys
from datetime import UTC, datetime, timedelta
from typing import NoReturn

import click

from reviewgate.config.settings import Settings, load_settings
from reviewgate.core.decisions import parse_decision, post_decision
from reviewgate.core.exceptions import ConfigurationError, ReviewGateError, SessionNotFoundError
from reviewgate.core.state import CompleteDecision, IssuesDecision, SessionState
from reviewgate.core.structured_logger import configure_logging, get_logger
from reviewgate.core.trace import TraceRecorder
from reviewgate.hooks import HookHandler, run_hook
from reviewgate.observability.stats import collect_template_stats
from reviewgate.persistence import (
    SessionRepository,
    clean_sessions,
    create_session_repository,
    parse_duration,
)

logger = get_logger("cli")

RULE = "─" * 70
PROMPT_PREVIEW_LEN = 50


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _fmt(ts: datetime) -> str:
    return ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _fail(message: str) -> NoReturn:
    click.echo(f"reviewgate: error: {message}", err=True)
    raise SystemExit(1)


def _settings(ctx: click.Context) -> Settings:
    try:
        settings = load_settings(ctx.obj.get("config"))
    except ConfigurationError as e:
        _fail(e.message)
    configure_logging(settings.logging.level, settings.logging.output_file)
    return settings


def _repository(ctx: click.Context) -> SessionRepository:
    return create_session_repository(_settings(ctx))


def _require_session(repository: SessionRepository, session_id: str) -> SessionState:
    try:
        state = repository.get(session_id)
    except ReviewGateError as e:
        _fail(e.message)
    if state is None:
        _fail(SessionNotFoundError(session_id).message)
    return state


def _preview(prompt: str | None, max_len: int) -> str:
    """First line of a prompt, shortened for display."""
    if not prompt:
        return "(no prompt)"
    lines = prompt.splitlines() or [prompt]
    first = lines[0]
    if len(first) > max_len:
        return f"{first[:max_len]}..."
    if len(lines) > 1:
        return f"{first} [...]"
    return first


@click.group()
@click.version_option(package_name="reviewgate")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default: $REVIEWGATE_CONFIG or ~/.reviewgate/config.yaml)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """reviewgate: independent review before an agent may finish."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path


@cli.command()
@click.argument("name")
@click.pass_context
def hook(ctx: click.Context, name: str) -> None:
    """Handle a lifecycle hook. Reads JSON on stdin, writes JSON on stdout."""
    try:
        settings = load_settings(ctx.obj.get("config"))
    except ConfigurationError as e:
        # A broken config must not block the agent
        settings = Settings.model_construct()
        configure_logging(settings.logging.level)
        logger.warning("Invalid configuration, using defaults", error=e.message)
    else:
        configure_logging(settings.logging.level, settings.logging.output_file)

    raw = sys.stdin.read()
    handler = HookHandler(create_session_repository(settings), settings)
    click.echo(run_hook(name, raw, handler))


@cli.command()
@click.argument("session_id")
@click.argument("decision")
@click.argument("summary")
@click.option("--message", default=None, help="What the agent must fix (ISSUES)")
@click.option("--opinions", default=None, help="Second opinions gathered during review (COMPLETE)")
@click.pass_context
def decide(
    ctx: click.Context,
    session_id: str,
    decision: str,
    summary: str,
    message: str | None,
    opinions: str | None,
) -> None:
    """Post a review decision (COMPLETE or ISSUES) for a session."""
    settings = _settings(ctx)
    repository = create_session_repository(settings)
    try:
        parsed = parse_decision(decision, summary, message, opinions)
        post_decision(repository, session_id, parsed, TraceRecorder(settings.trace.max_events), _now())
    except ReviewGateError as e:
        _fail(e.message)
    click.echo(f"Decision recorded: {parsed.type.upper()} for session {session_id}")


@cli.command()
@click.argument("session_id")
@click.pass_context
def context(ctx: click.Context, session_id: str) -> None:
    """Show what the reviewer needs to know about a session."""
    state = _require_session(_repository(ctx), session_id)
    review = state.review

    click.echo(f"Session: {state.session_id}")
    click.echo(f"Created: {_fmt(state.created_at)}")
    click.echo(f"Updated: {_fmt(state.updated_at)}")
    click.echo()

    decision = review.decision
    if isinstance(decision, (CompleteDecision, IssuesDecision)):
        label = f"{decision.type.capitalize()} - {decision.summary}"
    else:
        label = "Pending"
    click.echo(f"Review enabled: {str(review.enabled).lower()}")
    click.echo(f"Decision: {label}")
    click.echo(f"Block count: {review.block_count}")
    click.echo()

    trigger = review.gate_trigger
    if trigger is not None:
        click.echo("Gate trigger:")
        click.echo(f"  Tool: {trigger.tool_name}")
        click.echo(f"  Pattern: {trigger.pattern_matched}")
        click.echo(f"  Time: {_fmt(trigger.triggered_at)}")
        click.echo("  Input:")
        for line in json.dumps(trigger.tool_input.value, indent=2).splitlines():
            click.echo(f"    {line}")
        if trigger.tool_input.truncated:
            click.echo(f"    (truncated, original size: {trigger.tool_input.original_size} bytes)")
        click.echo()

    if not review.user_prompts:
        click.echo("User prompts: (none)")
        return
    click.echo("User prompts:")
    for i, prompt in enumerate(review.user_prompts, start=1):
        click.echo(f"[{i}] {_preview(prompt, 200)}")


@cli.command(name="list")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def list_sessions(ctx: click.Context, limit: int) -> None:
    """List recent sessions."""
    settings = _settings(ctx)
    try:
        sessions = create_session_repository(settings).list(limit)
    except ReviewGateError as e:
        _fail(e.message)

    if not sessions:
        click.echo("No sessions found.")
        click.echo(f"\nSessions are stored in: {settings.sessions_dir}")
        return

    click.echo(f"{'Session ID':<38} {'Created':<20} {'Review':<8} First Prompt")
    click.echo(RULE)
    for summary in sessions:
        created = summary.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
        active = "active" if summary.review_active else "-"
        click.echo(
            f"{summary.session_id:<38} {created:<20} {active:<8} "
            f"{_preview(summary.first_prompt, PROMPT_PREVIEW_LEN)}"
        )
    click.echo(RULE)
    click.echo(f"Showing {len(sessions)} session(s)")


@cli.command()
@click.argument("session_id")
@click.pass_context
def debug(ctx: click.Context, session_id: str) -> None:
    """Dump the full stored session as JSON."""
    state = _require_session(_repository(ctx), session_id)
    click.echo(state.model_dump_json(indent=2))


@cli.command()
@click.argument("session_id")
@click.option("--verbose", "-v", is_flag=True, help="Include event payloads")
@click.pass_context
def trace(ctx: click.Context, session_id: str, verbose: bool) -> None:
    """Show the trace events of a session."""
    state = _require_session(_repository(ctx), session_id)

    click.echo(f"Session: {state.session_id}")
    click.echo(f"Created: {_fmt(state.created_at)}")
    click.echo(f"Events: {len(state.trace)}")
    click.echo()

    if not state.trace:
        click.echo("(no trace events)")
        return

    for i, event in enumerate(state.trace, start=1):
        click.echo(f"[{i:>3}] {event.timestamp.strftime('%H:%M:%S')} {event.event_type}")
        if verbose:
            for line in json.dumps(event.payload, indent=2, default=str).splitlines():
                click.echo(f"      {line}")
            click.echo()


@cli.command()
@click.option("--before", default=None, help="Remove sessions older than this (7d, 24h, 30m)")
@click.option("--all", "remove_all", is_flag=True, help="Remove every session not under review")
@click.pass_context
def clean(ctx: click.Context, before: str | None, remove_all: bool) -> None:
    """Remove old sessions. Sessions awaiting review are kept."""
    settings = _settings(ctx)
    if remove_all:
        age = timedelta(0)
    elif before is None:
        age = timedelta(days=settings.cleanup.retention_days)
    else:
        try:
            age = parse_duration(before)
        except ValueError as e:
            _fail(str(e))

    try:
        removed = clean_sessions(create_session_repository(settings), age, _now())
    except ReviewGateError as e:
        _fail(e.message)
    click.echo(f"Removed {removed} session(s)")


@cli.command()
@click.option("--days", default=30, show_default=True, type=click.IntRange(min=0))
@click.pass_context
def stats(ctx: click.Context, days: int) -> None:
    """Show block template performance."""
    try:
        report = collect_template_stats(_repository(ctx), days, _now())
    except ReviewGateError as e:
        _fail(e.message)

    if not report.templates:
        click.echo(f"No template statistics available for the last {report.days} days.")
    else:
        click.echo(f"Template Performance (last {report.days} days):")
        click.echo(RULE)
        click.echo(f"{'Template':<12} {'Success':>10} {'Failure':>10} {'Avg Blocks':>12} {'Success Rate':>14}")
        click.echo(RULE)
        for template_id in sorted(report.templates):
            s = report.templates[template_id]
            click.echo(
                f"{template_id:<12} {s.success_count:>10} {s.failure_count:>10} "
                f"{s.avg_blocks:>12.1f} {s.success_rate:>13.1f}%"
            )
        click.echo(RULE)

        click.echo("\nFailure breakdown:")
        for template_id in sorted(report.templates):
            s = report.templates[template_id]
            click.echo(
                f"  {template_id}: not spawned {s.not_spawned}, no decision {s.no_decision}, "
                f"bad session id {s.bad_session_id}, pending {s.pending}"
            )

    click.echo(f"\nSessions analyzed: {report.sessions_analyzed}")
    click.echo(f"Sessions with review attempts: {report.sessions_with_attempts}")


if __name__ == "__main__":
    cli()

"""Retention cleanup of old session records."""

import logging
from datetime import datetime, timedelta

from .repositories import SessionRepository

logger = logging.getLogger(__name__)

_UNITS = {"d": "days", "h": "hours", "m": "minutes"}


def parse_duration(value: str) -> timedelta:
    """
    Parse an age such as ``7d``, ``24h``, ``30m`` or ``14`` (days).

    An empty string means the default of seven days.

    Raises:
        ValueError: If the value is not a non-negative whole number with an
            optional unit suffix
    """
    text = value.strip()
    if not text:
        return timedelta(days=7)

    unit = "days"
    if text[-1] in _UNITS:
        unit = _UNITS[text[-1]]
        text = text[:-1]

    if not text.isdigit():
        raise ValueError(f"Invalid duration: {value}")
    return timedelta(**{unit: int(text)})


def clean_sessions(repository: SessionRepository, older_than: timedelta, now: datetime) -> int:
    """
    Delete sessions created before ``now - older_than``.

    Sessions still waiting on a review are kept regardless of age.
    Returns the number of sessions removed.
    """
    cutoff = now - older_than
    removed = 0
    for summary in repository.list():
        if summary.created_at >= cutoff:
            continue
        if summary.review_active:
            logger.info("Keeping %s: review still pending", summary.session_id)
            continue
        if repository.delete(summary.session_id):
            removed += 1
    logger.info("Removed %d session(s) older than %s", removed, cutoff.isoformat())
    return removed

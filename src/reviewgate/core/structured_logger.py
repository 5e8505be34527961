"""
Structured Logging with Session IDs
===================================

Provides JSON-structured logging bound to the session being evaluated.
Hook output goes to stdout, so every handler configured here writes to
stderr or a log file.
"""

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Context variable to store session_id for the current hook invocation
_session_id_var: ContextVar[str | None] = ContextVar('session_id', default=None)

_SECRET_PATTERNS = re.compile(
    r"(sk-[A-Za-z0-9]+|gh[pousr]_[A-Za-z0-9]+|github_pat_[A-Za-z0-9_]+|"
    r"xox[bap]-[A-Za-z0-9-]+|Bearer\s+[A-Za-z0-9._~+/=-]+|"
    r"\b[A-Z][A-Z0-9_]*(?:TOKEN|SECRET|PASSWORD|API_KEY)=\S+)",
)

_ROOT_LOGGER = "reviewgate"


def _redact_secrets(text: str) -> str:
    return _SECRET_PATTERNS.sub("[REDACTED]", text)


class StructuredLogger:
    """
    Structured logger that outputs JSON logs with session IDs

    Example output:
    {
        "timestamp": "2026-01-31T10:30:45.123+00:00",
        "level": "WARNING",
        "component": "HookHandler",
        "message": "Storage error, failing open",
        "session_id": "4f7c...",
        "hook": "stop"
    }
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        """
        Initialize structured logger

        Args:
            component: Component name (e.g., 'HookHandler', 'FileStore')
            logger: Optional existing logger (creates new if not provided)
        """
        self.component = component
        self.logger = logger or logging.getLogger(f"{_ROOT_LOGGER}.{component}")

    def _log(self, level: str, message: str, **kwargs) -> None:
        session_id = _session_id_var.get()

        log_entry = {
            'timestamp': datetime.now(tz=UTC).isoformat(),
            'level': level,
            'component': self.component,
            'message': _redact_secrets(message),
        }

        if session_id:
            log_entry['session_id'] = session_id

        for k, v in kwargs.items():
            log_entry[k] = _redact_secrets(v) if isinstance(v, str) else v

        json_log = _redact_secrets(json.dumps(log_entry, default=str))

        log_method = getattr(self.logger, level.lower())
        log_method(json_log)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message"""
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message"""
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message"""
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message"""
        self._log('ERROR', message, **kwargs)


class SessionContext:
    """
    Context manager binding a session_id to every log line emitted inside it

    Usage:
        with SessionContext(hook_input.session_id):
            logger.info("Evaluating gate")
    """

    def __init__(self, session_id: str | None) -> None:
        self.session_id = session_id
        self.token = None

    def __enter__(self) -> str | None:
        self.token = _session_id_var.set(self.session_id)
        return self.session_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _session_id_var.reset(self.token)


def configure_logging(level: str = "WARNING", output_file: Path | None = None) -> None:
    """
    Attach handlers to the package logger.

    Args:
        level: Minimum level for the package logger
        output_file: Optional log file, rotated at 1 MB with three backups
    """
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(stderr_handler)

    if output_file is not None:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(output_file, maxBytes=1024 * 1024, backupCount=3)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(file_handler)


def get_logger(component: str) -> StructuredLogger:
    """
    Get a structured logger for a component

    Args:
        component: Component name

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(component)

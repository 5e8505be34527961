"""
File Implementation of the Session Repository
==============================================

One pretty-printed JSON document per session under ``<base>/sessions``.
Writes go to a temporary file in the same directory which is fsynced and
then renamed over the target, so a crash leaves either the old or the new
record and never a partial one.
"""

import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from reviewgate.core.exceptions import SerializationError, StorageError
from reviewgate.core.state import SessionState

from .repositories import SessionRepository, SessionSummary

logger = logging.getLogger(__name__)

_SESSION_ID_RE = re.compile(r"[A-Za-z0-9._-]+")


def _check_session_id(session_id: str) -> None:
    if not _SESSION_ID_RE.fullmatch(session_id) or session_id in (".", ".."):
        raise StorageError(
            f"Invalid session id: {session_id!r}",
            details={"session_id": session_id},
        )


class FileSessionRepository(SessionRepository):
    """Durable session store backed by atomic file replacement."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.sessions_dir = self.base_dir / "sessions"

    def _path(self, session_id: str) -> Path:
        _check_session_id(session_id)
        return self.sessions_dir / f"{session_id}.json"

    def _read(self, path: Path) -> SessionState:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e
        try:
            return SessionState.model_validate_json(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise SerializationError(
                f"Malformed session record {path}: not valid UTF-8",
                details={"path": str(path)},
            ) from e
        except ValidationError as e:
            raise SerializationError(
                f"Malformed session record {path}: {e.error_count()} validation error(s)",
                details={"path": str(path)},
            ) from e

    def get(self, session_id: str) -> SessionState | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        return self._read(path)

    def put(self, state: SessionState) -> None:
        path = self._path(state.session_id)
        payload = state.model_dump_json(indent=2)
        tmp_name = None
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.sessions_dir,
                prefix=f".{state.session_id}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(
                f"Failed to write session {state.session_id}: {e}",
                details={"path": str(path)},
            ) from e

    def list(self, limit: int | None = None) -> list[SessionSummary]:
        if not self.sessions_dir.is_dir():
            return []

        summaries = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                summaries.append(SessionSummary.from_state(self._read(path)))
            except (StorageError, SerializationError) as e:
                logger.warning("Skipping unreadable session record %s: %s", path.name, e.message)

        summaries.sort(key=lambda s: s.created_at, reverse=True)
        if limit is not None:
            summaries = summaries[:limit]
        return summaries

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete session {session_id}: {e}", details={"path": str(path)}) from e
        return True

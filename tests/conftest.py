"""
Pytest configuration for reviewgate tests: shared fixtures for sessions,
settings, a controllable clock and hook handlers.
"""

from datetime import UTC, datetime, timedelta

import pytest

from reviewgate.config.settings import Settings
from reviewgate.hooks import HookHandler, HookInput
from reviewgate.persistence import FileSessionRepository, InMemorySessionRepository

# =============================================================================
# SHARED FIXTURES
# =============================================================================

T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock; advance() moves time forward."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.reviewgate and REVIEWGATE_* env."""
    home = tmp_path / "home"
    for var in ("REVIEWGATE_CONFIG", "REVIEWGATE_STORAGE__PATH", "REVIEWGATE_STORAGE__BACKEND"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("REVIEWGATE_HOME", str(home))
    return home


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_repo():
    return InMemorySessionRepository()


@pytest.fixture
def file_repo(tmp_path):
    return FileSessionRepository(tmp_path / "store")


@pytest.fixture
def settings(tmp_path):
    return Settings(storage={"path": tmp_path / "store"})


@pytest.fixture
def gated_settings(tmp_path):
    return Settings(
        storage={"path": tmp_path / "store"},
        review={"gates": {"tools": ["Bash:gh issue close*", "Bash:git push*", "close*"]}},
    )


def _make_handler(repo, settings, clock, **kwargs) -> HookHandler:
    kwargs.setdefault("template_loader", lambda template_id: "Review {{session_id}} with {{reviewer_agent}}")
    kwargs.setdefault("command_exists", lambda name: False)
    return HookHandler(repo, settings, clock=clock, **kwargs)


@pytest.fixture
def make_handler():
    """Factory: make_handler(repo, settings, clock, **overrides)."""
    return _make_handler


@pytest.fixture
def handler(memory_repo, settings, clock):
    return _make_handler(memory_repo, settings, clock)


@pytest.fixture
def gated_handler(memory_repo, gated_settings, clock):
    return _make_handler(memory_repo, gated_settings, clock)


def _hook_input(session_id: str = "sess-1", **fields) -> HookInput:
    return HookInput(session_id=session_id, cwd="/tmp/project", **fields)


@pytest.fixture
def make_input():
    """Factory: make_input(session_id="sess-1", **fields)."""
    return _hook_input

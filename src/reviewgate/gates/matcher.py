"""Gate Matcher: maps a tool call to the first configured pattern it matches."""

import re
from functools import lru_cache
from typing import Any, Iterable

from .normalizer import normalize_command

BASH_TOOL = "Bash"
BASH_KEY_PREFIX = "Bash:"


def format_tool_key(tool_name: str | None, tool_input: Any = None) -> str:
    """
    Build the string gate patterns are matched against.

    Shell commands become ``Bash:<normalized command>``; every other tool is
    keyed by its name alone.
    """
    name = tool_name or "unknown"
    if name == BASH_TOOL and isinstance(tool_input, dict):
        command = tool_input.get("command")
        if isinstance(command, str):
            return f"{BASH_KEY_PREFIX}{normalize_command(command)}"
    return name


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)


def glob_match(pattern: str, key: str) -> bool:
    """Whole-string, case-sensitive match where ``*`` is the only wildcard."""
    return _compile(pattern).fullmatch(key) is not None


def find_matching_pattern(key: str, patterns: Iterable[str]) -> str | None:
    """First pattern in list order that matches ``key``. Order is never changed."""
    for pattern in patterns:
        if glob_match(pattern, key):
            return pattern
    return None

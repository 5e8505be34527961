"""
Command Normalizer
==================

Reduces a shell command to the part that actually acts, so that gate
patterns like ``Bash:gh issue close*`` still match when the command is
piped into, wrapped in ``bash -c`` or prefixed with ``GH_TOKEN=...``.

The result is only ever used for matching, never executed. Malformed input
(unbalanced quotes, dangling escapes) degrades to a best-effort string and
never raises.
"""

import re

MAX_NORMALIZED_LENGTH = 80

_NAME_RE = re.compile(r"\w+")
_SHELL_WRAPPERS = (
    "bash -c ",
    "sh -c ",
    "zsh -c ",
    "/bin/bash -c ",
    "/bin/sh -c ",
)


def find_last_unquoted_pipe(cmd: str) -> int | None:
    """Index of the last ``|`` outside quotes that is not part of ``||``."""
    in_single = False
    in_double = False
    last_pipe = None
    prev = ""
    for i, c in enumerate(cmd):
        escaped = prev == "\\"
        if c == "'" and not in_double and not escaped:
            in_single = not in_single
        elif c == '"' and not in_single and not escaped:
            in_double = not in_double
        elif c == "|" and not (in_single or in_double or escaped):
            nxt = cmd[i + 1] if i + 1 < len(cmd) else ""
            if prev != "|" and nxt != "|":
                last_pipe = i
        # A backslash that is itself escaped does not escape the next char
        prev = "" if escaped and c == "\\" else c
    return last_pipe


def skip_value(s: str) -> str:
    """
    Drop one shell word (quoted or bare) from the front of ``s``.

    An unclosed quote returns the input unchanged so callers stop consuming.
    """
    s = s.lstrip()
    if s.startswith('"'):
        prev = ""
        for i, c in enumerate(s[1:], start=1):
            if c == '"' and prev != "\\":
                return s[i + 1:]
            prev = "" if prev == "\\" and c == "\\" else c
        return s
    if s.startswith("'"):
        end = s.find("'", 1)
        return s[end + 1:] if end != -1 else s
    parts = s.split(None, 1)
    return f" {parts[1]}" if len(parts) == 2 else ""


def skip_env_command(cmd: str) -> str:
    """Skip the ``NAME=value`` arguments that follow ``env``."""
    rest = cmd.strip()
    while "=" in rest:
        name, _, value = rest.partition("=")
        if not _NAME_RE.fullmatch(name):
            break
        skipped = skip_value(value).strip()
        if skipped == value.strip() and value.lstrip()[:1] in ("'", '"'):
            break
        rest = skipped
    return rest


def extract_nested_shell_command(cmd: str) -> str | None:
    """``bash -c 'cmd'`` -> ``cmd``; None when ``cmd`` is not a wrapper."""
    for wrapper in _SHELL_WRAPPERS:
        if not cmd.startswith(wrapper):
            continue
        rest = cmd[len(wrapper):].strip()
        if not rest or rest[0] not in ("'", '"'):
            return rest
        quote = rest[0]
        prev = ""
        for i, c in enumerate(rest[1:], start=1):
            if c == quote and (quote == "'" or prev != "\\"):
                return rest[1:i]
            prev = "" if prev == "\\" and c == "\\" else c
        return rest[1:]
    return None


def strip_env_vars(cmd: str) -> str:
    """Strip ``NAME=value`` assignments prefixed to a command."""
    rest = cmd.strip()
    while True:
        match = _NAME_RE.match(rest)
        if match is None or not rest[match.end():].startswith("="):
            return rest
        value = rest[match.end() + 1:]
        skipped = skip_value(value).strip()
        if skipped == value.strip() and value.lstrip()[:1] in ("'", '"'):
            return rest
        rest = skipped


def normalize_command(cmd: str) -> str:
    """
    Canonical form of a shell command for gate matching.

    >>> normalize_command("echo 'y' | GH_TOKEN=abc gh issue close 123")
    'gh issue close 123'
    """
    cmd = cmd.strip()

    pipe = find_last_unquoted_pipe(cmd)
    if pipe is not None:
        cmd = cmd[pipe + 1:].strip()

    if cmd.startswith("env "):
        cmd = skip_env_command(cmd[len("env "):])

    nested = extract_nested_shell_command(cmd)
    if nested is not None:
        cmd = nested

    cmd = strip_env_vars(cmd)
    return cmd[:MAX_NORMALIZED_LENGTH]

"""Agent lifecycle hooks."""

from .handlers import HookHandler, extract_session_id
from .input import HookInput
from .output import HookDecision, HookOutput, PermissionDecision, PreToolUseOutput
from .runner import HOOK_NAMES, dispatch_hook, run_hook

__all__ = [
    "HOOK_NAMES",
    "HookDecision",
    "HookHandler",
    "HookInput",
    "HookOutput",
    "PermissionDecision",
    "PreToolUseOutput",
    "dispatch_hook",
    "extract_session_id",
    "run_hook",
]

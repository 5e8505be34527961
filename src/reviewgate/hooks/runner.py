"""Hook dispatch: hook name + raw stdin JSON -> output JSON."""

from pydantic import ValidationError

from reviewgate.core.structured_logger import get_logger

from .handlers import HookHandler
from .input import HookInput
from .output import HookOutput, PreToolUseOutput

logger = get_logger("HookRunner")

HOOK_NAMES = (
    "session-start",
    "user-prompt",
    "pre-tool-use",
    "post-tool-use",
    "stop",
    "subagent-stop",
    "session-end",
)

_METHODS = {name: name.replace("-", "_") for name in HOOK_NAMES}


def fail_open_output(name: str, warning: str) -> HookOutput | PreToolUseOutput:
    """Allow/approve in whichever shape the hook expects."""
    if name == "pre-tool-use":
        return PreToolUseOutput.fail_open(warning)
    return HookOutput.fail_open(warning)


def dispatch_hook(name: str, hook_input: HookInput, handler: HookHandler) -> HookOutput | PreToolUseOutput:
    method = _METHODS.get(name)
    if method is None:
        logger.warning("Unknown hook, failing open", hook=name)
        return HookOutput.fail_open(f"reviewgate: warning: unknown hook: {name}")
    return getattr(handler, method)(hook_input)


def run_hook(name: str, raw_input: str, handler: HookHandler) -> str:
    """Parse stdin, dispatch, and serialize the result."""
    try:
        hook_input = HookInput.model_validate_json(raw_input)
    except ValidationError as e:
        logger.warning("Unparseable hook input, failing open", hook=name, errors=e.error_count())
        return fail_open_output(name, f"reviewgate: warning: invalid hook input for {name}").to_json()

    return dispatch_hook(name, hook_input, handler).to_json()

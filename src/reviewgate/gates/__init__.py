"""Tool gates: command normalization, pattern matching and approval checks."""

from .approval import ApprovalVerdict, evaluate_approval
from .matcher import find_matching_pattern, format_tool_key, glob_match
from .normalizer import normalize_command

__all__ = [
    "ApprovalVerdict",
    "evaluate_approval",
    "find_matching_pattern",
    "format_tool_key",
    "glob_match",
    "normalize_command",
]

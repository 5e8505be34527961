"""
Hook Output Models
==================

Two wire shapes are produced:

    {"decision": "approve"|"block", "reason"?, "context"?, "systemMessage"?}

for session/prompt/stop hooks, and

    {"hookSpecificOutput": {"hookEventName": "PreToolUse",
                            "permissionDecision": "allow"|"deny",
                            "reason"?, "updatedInput"?},
     "systemMessage"?}

for pre-tool-use. Unset optional fields are omitted.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class HookDecision(str, Enum):
    APPROVE = "approve"
    BLOCK = "block"


class PermissionDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class HookOutput(_WireModel):
    decision: HookDecision
    reason: Optional[str] = None
    context: Optional[str] = None
    system_message: Optional[str] = Field(None, alias="systemMessage")

    @classmethod
    def approve(cls, context: Optional[str] = None) -> "HookOutput":
        return cls(decision=HookDecision.APPROVE, context=context)

    @classmethod
    def block(cls, reason: str) -> "HookOutput":
        return cls(decision=HookDecision.BLOCK, reason=reason)

    @classmethod
    def fail_open(cls, warning: str) -> "HookOutput":
        """Approve because something went wrong, telling the user why."""
        return cls(decision=HookDecision.APPROVE, system_message=warning)

    @property
    def blocked(self) -> bool:
        return self.decision == HookDecision.BLOCK


class PreToolUseDecision(_WireModel):
    hook_event_name: Literal["PreToolUse"] = Field("PreToolUse", alias="hookEventName")
    permission_decision: PermissionDecision = Field(..., alias="permissionDecision")
    reason: Optional[str] = None
    updated_input: Optional[Any] = Field(None, alias="updatedInput")


class PreToolUseOutput(_WireModel):
    hook_specific_output: PreToolUseDecision = Field(..., alias="hookSpecificOutput")
    system_message: Optional[str] = Field(None, alias="systemMessage")

    @classmethod
    def _build(cls, decision: PermissionDecision, reason: Optional[str] = None) -> "PreToolUseOutput":
        return cls(hook_specific_output=PreToolUseDecision(permission_decision=decision, reason=reason))

    @classmethod
    def allow(cls) -> "PreToolUseOutput":
        return cls._build(PermissionDecision.ALLOW)

    @classmethod
    def deny(cls, reason: str) -> "PreToolUseOutput":
        return cls._build(PermissionDecision.DENY, reason)

    @classmethod
    def fail_open(cls, warning: str) -> "PreToolUseOutput":
        return cls(
            hook_specific_output=PreToolUseDecision(permission_decision=PermissionDecision.ALLOW),
            system_message=warning,
        )

    @property
    def permission(self) -> PermissionDecision:
        return self.hook_specific_output.permission_decision

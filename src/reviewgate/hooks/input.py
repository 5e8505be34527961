"""Hook input as delivered on stdin by the agent runtime."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HookInput(BaseModel):
    """
    One lifecycle event.

    Only ``session_id`` and ``cwd`` are always present; the rest depend on
    the hook. Unknown fields are ignored so newer runtimes keep working.
    """

    session_id: str = Field(..., min_length=1)
    cwd: Path
    prompt: Optional[str] = None
    tool_name: Optional[str] = None
    tool_input: Optional[Any] = None
    tool_response: Optional[Any] = None
    source: Optional[str] = Field(None, description="startup, resume, clear or compact")
    subagent_type: Optional[str] = None
    subagent_prompt: Optional[str] = None
    subagent_started_at: Optional[datetime] = None

    model_config = ConfigDict(extra='ignore')

    @field_validator('subagent_started_at')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

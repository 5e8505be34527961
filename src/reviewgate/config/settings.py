"""
Pydantic Settings Configuration
=================================

Type-safe configuration management using Pydantic.
Validates all configuration values up front; the hook command falls back to
defaults when validation fails so a bad config never blocks the agent.
"""

import os
from enum import Enum
from importlib import metadata
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from reviewgate.core.exceptions import ConfigurationError


def _project_version() -> str:
    """Resolve the project version from package metadata."""
    try:
        return metadata.version("reviewgate")
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


def default_home() -> Path:
    """Return the reviewgate home directory (REVIEWGATE_HOME or ~/.reviewgate)."""
    env_home = os.environ.get("REVIEWGATE_HOME")
    if env_home:
        return Path(env_home)
    return Path.home() / ".reviewgate"


class ReviewMode(str, Enum):
    """When a user prompt starts a review cycle."""
    ALWAYS = "always"
    PROMPT = "prompt"
    NEVER = "never"


class ApprovalScope(str, Enum):
    """How long a Complete decision keeps authorizing gated tools."""
    SESSION = "session"
    PROMPT = "prompt"
    TOOL = "tool"


class StorageConfig(BaseModel):
    """Session record storage"""
    path: Path = Field(default_factory=default_home, description="reviewgate home directory")
    backend: str = Field("file", description="Storage backend (file, memory)")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {'file', 'memory'}:
            raise ValueError("Storage backend must be one of: file, memory")
        return v_lower

    model_config = ConfigDict(extra='allow')


class GatesConfig(BaseModel):
    """Tool gates that require review before the tool runs"""
    tools: List[str] = Field(default_factory=list, description="Ordered glob patterns (first match wins)")
    approval_scope: ApprovalScope = Field(ApprovalScope.PROMPT, description="Lifetime of a gate approval")
    approval_ttl_seconds: Optional[int] = Field(None, ge=1, description="Approval expiry in seconds")

    @property
    def enabled(self) -> bool:
        """An empty pattern list disables gating entirely."""
        return bool(self.tools)

    model_config = ConfigDict(extra='allow')


class ReviewConfig(BaseModel):
    """Review triggering"""
    mode: ReviewMode = Field(ReviewMode.PROMPT, description="Review mode (always, prompt, never)")
    trigger_prefix: str = Field("#review", min_length=1, description="Prompt prefix that requests review")
    reviewer_agent: str = Field("reviewgate:reviewer", min_length=1, description="Reviewer sub-agent type")
    gates: GatesConfig = Field(default_factory=GatesConfig)

    model_config = ConfigDict(extra='allow')


class CircuitBreakerConfig(BaseModel):
    """Forced progress after repeated blocks"""
    max_blocks: int = Field(3, ge=1, description="Blocks before the breaker trips")
    cooldown_seconds: int = Field(300, ge=0, description="Seconds before a tripped breaker may reset")

    model_config = ConfigDict(extra='allow')


class TraceConfig(BaseModel):
    """Per-session trace log"""
    max_events: int = Field(500, ge=1, le=100000, description="Maximum trace events per session")

    model_config = ConfigDict(extra='allow')


class TemplateConfig(BaseModel):
    """Block message templates"""
    active: str = Field("default", description="Template id, or 'random' for weighted selection")
    weights: Dict[str, int] = Field(default_factory=lambda: {"default": 100})

    @field_validator('weights')
    @classmethod
    def validate_weights(cls, v: Dict[str, int]) -> Dict[str, int]:
        if any(weight < 0 for weight in v.values()):
            raise ValueError("Template weights must be non-negative")
        return v

    model_config = ConfigDict(extra='allow')


class CleanupConfig(BaseModel):
    """Retention of old sessions"""
    retention_days: int = Field(7, ge=0, description="Default age for 'clean'")

    model_config = ConfigDict(extra='allow')


class ExternalModelsConfig(BaseModel):
    """Second-opinion CLIs advertised at session start (empty to disable)"""
    codex: str = Field("codex", description="Path or name of the codex CLI")
    gemini: str = Field("gemini", description="Path or name of the gemini CLI")

    model_config = ConfigDict(extra='allow')


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field("WARNING", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    output_file: Optional[Path] = Field(None, description="Log file path")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    model_config = ConfigDict(extra='allow')


class Settings(BaseSettings):
    """
    Main application settings with type validation.

    Configuration is loaded from:
    1. YAML config file (if provided; its sections win)
    2. Environment variables with REVIEWGATE_ prefix
    3. Default values (fallback)

    Environment variable mapping uses double-underscore nesting:
      REVIEWGATE_CIRCUIT_BREAKER__MAX_BLOCKS
      REVIEWGATE_REVIEW__GATES__APPROVAL_SCOPE
      REVIEWGATE_TRACE__MAX_EVENTS
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    trace: TraceConfig = Field(default_factory=TraceConfig)
    templates: TemplateConfig = Field(default_factory=TemplateConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    external_models: ExternalModelsConfig = Field(default_factory=ExternalModelsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    version: str = Field(default_factory=_project_version, description="Project version")

    model_config = ConfigDict(
        env_prefix='REVIEWGATE_',
        env_nested_delimiter='__',
        extra='allow',
        validate_assignment=True,
    )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()

    @property
    def sessions_dir(self) -> Path:
        return self.storage.path / "sessions"

    @property
    def templates_dir(self) -> Path:
        return self.storage.path / "templates"


def resolve_config_path(config_path: Optional[str | Path] = None) -> Optional[Path]:
    """Explicit path, then REVIEWGATE_CONFIG, then <home>/config.yaml if present."""
    if config_path:
        return Path(config_path)
    env_path = os.environ.get("REVIEWGATE_CONFIG")
    if env_path:
        return Path(env_path)
    candidate = default_home() / "config.yaml"
    return candidate if candidate.exists() else None


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """
    Load and validate application settings.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid
    """
    path = resolve_config_path(config_path)
    try:
        if path is not None:
            return Settings.from_yaml(path)
        return Settings.from_env()
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except (ValidationError, ValueError, TypeError) as e:
        raise ConfigurationError(f"Configuration validation failed:\n{e}") from e


__all__ = [
    'ApprovalScope',
    'CircuitBreakerConfig',
    'CleanupConfig',
    'ExternalModelsConfig',
    'GatesConfig',
    'LoggingConfig',
    'ReviewConfig',
    'ReviewMode',
    'Settings',
    'StorageConfig',
    'TemplateConfig',
    'TraceConfig',
    'default_home',
    'load_settings',
    'resolve_config_path',
]

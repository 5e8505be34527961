"""Configuration loading for reviewgate."""

from .settings import (
    ApprovalScope,
    GatesConfig,
    ReviewMode,
    Settings,
    default_home,
    load_settings,
)

__all__ = [
    "ApprovalScope",
    "GatesConfig",
    "ReviewMode",
    "Settings",
    "default_home",
    "load_settings",
]

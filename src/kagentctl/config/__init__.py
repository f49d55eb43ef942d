"""Settings loading for kagentctl."""

from .settings import (
    EnvironmentSettings,
    OrchestratorSettings,
    VerificationSettings,
    find_settings_file,
    load_settings,
)

__all__ = [
    "OrchestratorSettings",
    "EnvironmentSettings",
    "VerificationSettings",
    "find_settings_file",
    "load_settings",
]

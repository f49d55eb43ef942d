"""Orchestrator settings.

Settings are read from ``kagentctl.yaml`` at the project root (or the file
named by ``KAGENTCTL_CONFIG``) and validated with pydantic. Every field has
a default, so a missing file yields a working configuration for the
standard chart layout.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kagentctl.deployment.constants import DeploymentConstants, DeploymentPaths
from kagentctl.deployment.lifecycle.models import EnvironmentName, Tier

_CONSTANTS = DeploymentConstants()


class EnvironmentSettings(BaseModel):
    """Per-environment configuration bundle."""

    model_config = ConfigDict(extra="forbid")

    values_file: Path
    tier: Tier = Tier.NON_PRODUCTION
    credential_providers: list[str] = Field(default_factory=lambda: ["openai"])
    require_credentials: bool = False


class VerificationSettings(BaseModel):
    """Post-operation readiness check."""

    model_config = ConfigDict(extra="forbid")

    delay_seconds: float = Field(default=_CONSTANTS.VERIFY_DELAY_SECONDS, ge=0)
    expected_min_ready: int = Field(default=_CONSTANTS.EXPECTED_MIN_READY, ge=0)
    label_selector: str = _CONSTANTS.WORKLOAD_LABEL_TEMPLATE
    request_timeout_seconds: float = Field(
        default=_CONSTANTS.K8S_REQUEST_TIMEOUT_SECONDS, gt=0
    )

    def selector_for(self, release_name: str) -> str:
        return self.label_selector.format(release=release_name)


def _default_environments() -> dict[EnvironmentName, EnvironmentSettings]:
    env_dir = Path(_CONSTANTS.ENV_DIR)
    values = _CONSTANTS.VALUES_FILE_NAME
    return {
        EnvironmentName.DEVELOPMENT: EnvironmentSettings(
            values_file=env_dir / "dev" / values,
        ),
        EnvironmentName.STAGING: EnvironmentSettings(
            values_file=env_dir / "staging" / values,
        ),
        EnvironmentName.PRODUCTION: EnvironmentSettings(
            values_file=env_dir / "prod" / values,
            tier=Tier.PRODUCTION,
            require_credentials=True,
        ),
    }


class OrchestratorSettings(BaseModel):
    """Top-level settings passed explicitly into the lifecycle components."""

    model_config = ConfigDict(extra="forbid")

    helm_binary: str = "helm"
    kubectl_binary: str = "kubectl"
    k8s_backend: Literal["kr8s", "kubectl"] = "kr8s"

    default_namespace: str = _CONSTANTS.DEFAULT_NAMESPACE
    release_name: str = _CONSTANTS.HELM_RELEASE_NAME
    definitions_suffix: str = _CONSTANTS.DEFINITIONS_SUFFIX

    # Local chart directories or chart references (oci://, repo/chart)
    application_chart: str = f"{_CONSTANTS.CHARTS_DIR}/{_CONSTANTS.APPLICATION_CHART_NAME}"
    definitions_chart: str = f"{_CONSTANTS.CHARTS_DIR}/{_CONSTANTS.DEFINITIONS_CHART_NAME}"

    definitions_timeout: str = _CONSTANTS.DEFINITIONS_TIMEOUT
    application_timeout: str = _CONSTANTS.APPLICATION_TIMEOUT

    backup_dir: Path = Path(_CONSTANTS.BACKUP_DIR)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    environments: dict[EnvironmentName, EnvironmentSettings] = Field(
        default_factory=_default_environments
    )

    def resolve_path(self, project_root: Path, path: Path) -> Path:
        """Resolve a settings path against the project root."""
        return path if path.is_absolute() else project_root / path

    def resolve_chart(self, project_root: Path, chart: str) -> str:
        """Resolve a chart reference; only existing local directories are rebased."""
        candidate = project_root / chart
        if not Path(chart).is_absolute() and candidate.exists():
            return str(candidate)
        return chart


def find_settings_file(project_root: Path) -> Path | None:
    """Locate the settings file, honouring KAGENTCTL_CONFIG."""
    override = os.getenv(_CONSTANTS.CONFIG_ENV_VAR)
    if override:
        return Path(override)
    candidate = DeploymentPaths(project_root).config_file
    return candidate if candidate.exists() else None


def load_settings(file_path: Path | None = None) -> OrchestratorSettings:
    """Load and validate orchestrator settings from YAML.

    Args:
        file_path: Settings file; None returns the built-in defaults

    Returns:
        Validated OrchestratorSettings

    Raises:
        ValueError: If the YAML is malformed or fails validation
        FileNotFoundError: If an explicit file does not exist
    """
    if file_path is None:
        logger.debug("No settings file found, using defaults")
        return OrchestratorSettings()

    logger.info(f"Loading settings from {file_path}")
    with open(file_path) as f:
        content = f.read()

    try:
        loaded: dict[str, Any] | None = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not loaded:
        return OrchestratorSettings()
    if not isinstance(loaded, dict):
        raise ValueError("Invalid settings structure: expected a mapping")

    try:
        settings = OrchestratorSettings(**loaded)
    except ValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e

    logger.debug(
        f"Configured environments: {[env.value for env in settings.environments]}"
    )
    return settings

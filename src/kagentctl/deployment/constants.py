"""Deployment constants and configuration.

This module centralizes all magic strings, paths, and default values
used throughout the release lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for the two-layer kagent Helm release set.

    This class provides a centralized location for all deployment-related
    constants, making them easy to find, update, and test.

    All attributes are class-level and immutable.
    """

    # Kubernetes/Helm identifiers
    DEFAULT_NAMESPACE: str = "kagent"
    HELM_RELEASE_NAME: str = "sre-kagent"
    DEFINITIONS_SUFFIX: str = "-crds"
    APPLICATION_CHART_NAME: str = "sre-kagent-base"
    DEFINITIONS_CHART_NAME: str = "sre-kagent-crds"

    # Timeouts (definitions layer manages far fewer resources)
    DEFINITIONS_TIMEOUT: str = "300s"
    APPLICATION_TIMEOUT: str = "600s"
    ROLLBACK_TIMEOUT: str = "5m"
    TEST_TIMEOUT: str = "5m"

    # Post-operation readiness check
    VERIFY_DELAY_SECONDS: float = 5.0
    EXPECTED_MIN_READY: int = 1
    WORKLOAD_LABEL_TEMPLATE: str = "app.kubernetes.io/instance={release}"

    # Upper bound on any single Kubernetes API read (readiness, logs)
    K8S_REQUEST_TIMEOUT_SECONDS: float = 10.0
    LOG_TAIL_LINES: int = 50

    # Backup artifacts: <release>-<env>-backup-<UTC timestamp>.yaml
    BACKUP_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"

    # Relative path fragments for project structure
    CHARTS_DIR: str = "charts"
    ENV_DIR: str = "env"
    VALUES_FILE_NAME: str = "values.yaml"
    BACKUP_DIR: str = "backups"

    # Settings discovery
    CONFIG_FILE_NAME: str = "kagentctl.yaml"
    CONFIG_ENV_VAR: str = "KAGENTCTL_CONFIG"


class DeploymentPaths:
    """Path resolver for files read from the project root.

    Chart, values and backup locations are configurable and live in
    OrchestratorSettings; this class covers the fixed ones.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize deployment paths.

        Args:
            project_root: Path to the project root directory
        """
        self.project_root = project_root
        self._constants = DeploymentConstants()

    @property
    def config_file(self) -> Path:
        """Get path to kagentctl.yaml."""
        return self.project_root / self._constants.CONFIG_FILE_NAME

    @property
    def env_file(self) -> Path:
        """Get path to .env file."""
        return self.project_root / ".env"

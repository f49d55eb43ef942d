"""Pre-destructive backup capture.

Writes the resolved values of a release to a timestamped YAML file before
it is uninstalled. Artifacts are for humans doing manual recovery; the
orchestrator never reads them back.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from ..constants import DeploymentConstants
from ..errors import CaptureUnavailable
from ..shell_commands.types import REDACTED
from .models import BackupArtifact, EnvironmentName, Release

if TYPE_CHECKING:
    from ..shell_commands.helm import HelmCommands


def backup_file_name(
    release_name: str,
    environment: EnvironmentName,
    created_at: datetime,
    timestamp_format: str = DeploymentConstants.BACKUP_TIMESTAMP_FORMAT,
) -> str:
    """Deterministic artifact name: <release>-<env>-backup-<UTC timestamp>.yaml."""
    stamp = created_at.astimezone(UTC).strftime(timestamp_format)
    return f"{release_name}-{environment.value}-backup-{stamp}.yaml"


def mask_value(values: Any, dotted_path: str) -> None:
    """Replace a non-empty value at a dotted path in place."""
    *parents, leaf = dotted_path.split(".")
    node = values
    for key in parents:
        if not isinstance(node, dict) or key not in node:
            return
        node = node[key]
    if isinstance(node, dict) and node.get(leaf):
        node[leaf] = REDACTED


class BackupRecorder:
    """Captures a release's resolved configuration to disk."""

    def __init__(
        self,
        helm: HelmCommands,
        backup_dir: Path,
        clock: Callable[[], datetime] | None = None,
        masked_paths: Iterable[str] = (),
    ) -> None:
        """Initialize the recorder.

        Args:
            helm: Helm command layer used to read release values
            backup_dir: Directory receiving backup artifacts
            clock: Returns the current UTC time (injectable for tests)
            masked_paths: Dotted value paths replaced before writing (credentials)
        """
        self.helm = helm
        self.backup_dir = backup_dir
        self.masked_paths = tuple(masked_paths)
        self._clock = clock or (lambda: datetime.now(UTC))

    def capture(self, release: Release, environment: EnvironmentName) -> BackupArtifact:
        """Capture the current values of a deployed release.

        Args:
            release: Release about to be destroyed
            environment: Active environment (part of the artifact name)

        Returns:
            The written BackupArtifact

        Raises:
            CaptureUnavailable: If values cannot be read or the file cannot be written
        """
        result = self.helm.get_values(release.name, release.namespace, all_values=True)
        if not result.success:
            raise CaptureUnavailable(
                release.name,
                result.stderr.strip() or f"helm get values exited with {result.returncode}",
            )

        try:
            values: Any = yaml.safe_load(result.stdout) or {}
        except yaml.YAMLError as e:
            raise CaptureUnavailable(release.name, f"Unparseable values: {e}") from e

        for dotted in self.masked_paths:
            mask_value(values, dotted)

        created_at = self._clock()
        path = self.backup_dir / backup_file_name(release.name, environment, created_at)
        document = {
            "release": release.name,
            "namespace": release.namespace,
            "layer": release.layer.value,
            "environment": environment.value,
            "capturedAt": created_at.astimezone(UTC).isoformat(),
            "values": values,
        }

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            # Write-once: an existing artifact with the same name is never overwritten
            with open(path, "x") as f:
                yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise CaptureUnavailable(release.name, f"Cannot write {path}: {e}") from e

        logger.info(f"Captured backup of {release.name} to {path}")
        return BackupArtifact(
            release=release,
            environment=environment,
            path=path,
            created_at=created_at,
        )

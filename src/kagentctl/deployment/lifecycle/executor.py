"""Single-operation execution against the release manager.

Translates an Operation into a helm invocation and classifies the outcome.
Failed mutating calls are surfaced immediately and never retried: helm
gives no idempotency guarantee for a partially applied release.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .credentials import InjectedCredentials
from .models import (
    Environment,
    Layer,
    Operation,
    OperationKind,
    OperationResult,
    ReleaseState,
    ReleaseStatus,
    ResultStatus,
)

if TYPE_CHECKING:
    from ..shell_commands.helm import HelmCommands

# helm uninstall output for a release that is already gone
_NOT_FOUND_MARKERS = ("release: not found", "release not loaded")


@dataclass(frozen=True)
class LayerProfile:
    """Chart and wait budget for one layer."""

    chart: str
    timeout: str
    uses_environment_values: bool


class OperationExecutor:
    """Drives one chart operation against one release.

    Attributes:
        helm: Helm command layer (carries the injected binary path)
        profiles: Chart and timeout per layer
        on_output: Optional sink for streamed helm output
    """

    def __init__(
        self,
        helm: HelmCommands,
        profiles: dict[Layer, LayerProfile],
        on_output: Callable[[str], None] | None = None,
    ) -> None:
        self.helm = helm
        self.profiles = profiles
        self.on_output = on_output

    def execute(
        self,
        operation: Operation,
        environment: Environment,
        *,
        current: ReleaseState | None = None,
        credentials: InjectedCredentials | None = None,
    ) -> OperationResult:
        """Execute an operation and classify its result.

        Args:
            operation: What to do
            environment: Active environment (values file for the application layer)
            current: Probe result for the target, used to skip or adjust the call
            credentials: Injected provider credentials (application layer only)

        Returns:
            OperationResult; a failure carries helm's raw output as diagnostic
        """
        release = operation.release
        logger.info(
            f"{operation.kind.value} {release.name} ({release.layer.value}) "
            f"in {release.namespace}{' [dry-run]' if operation.dry_run else ''}"
        )

        if operation.kind is OperationKind.UNINSTALL:
            return self._uninstall(operation, current)

        profile = self.profiles[release.layer]
        value_files: list[Path] = []
        set_values: dict[str, str] = {}
        if profile.uses_environment_values:
            value_files.append(environment.values_file)
            if credentials:
                set_values = credentials.as_set_values()

        if operation.kind is OperationKind.INSTALL:
            result = self.helm.install(
                release.name,
                profile.chart,
                release.namespace,
                value_files=value_files,
                set_string=set_values,
                timeout=profile.timeout,
                wait=operation.wait,
                dry_run=operation.dry_run,
                replace=current is not None and current.in_history_only,
                on_output=self.on_output,
            )
        else:
            result = self.helm.upgrade(
                release.name,
                profile.chart,
                release.namespace,
                value_files=value_files,
                set_string=set_values,
                timeout=profile.timeout,
                wait=operation.wait,
                dry_run=operation.dry_run,
                force=operation.force,
                reset_values=operation.reset_values,
                on_output=self.on_output,
            )

        if result.success:
            return OperationResult(operation, ResultStatus.SUCCEEDED)

        diagnostic = result.stderr.strip() or result.stdout.strip()
        logger.warning(f"{operation.kind.value} of {release.name} failed")
        return OperationResult(operation, ResultStatus.FAILED, diagnostic or None)

    def _uninstall(
        self, operation: Operation, current: ReleaseState | None
    ) -> OperationResult:
        release = operation.release
        if current is not None and current.status is ReleaseStatus.ABSENT:
            logger.info(f"{release.name} is not installed; nothing to uninstall")
            return OperationResult(
                operation,
                ResultStatus.SKIPPED_NOT_FOUND,
                f"release '{release.name}' not found",
            )

        profile = self.profiles[release.layer]
        result = self.helm.uninstall(
            release.name,
            release.namespace,
            wait=operation.wait,
            timeout=profile.timeout,
            keep_history=operation.keep_history,
            dry_run=operation.dry_run,
        )
        if result.success:
            return OperationResult(operation, ResultStatus.SUCCEEDED)

        diagnostic = result.stderr.strip() or result.stdout.strip()
        if any(marker in diagnostic.lower() for marker in _NOT_FOUND_MARKERS):
            return OperationResult(operation, ResultStatus.SKIPPED_NOT_FOUND, diagnostic)
        return OperationResult(operation, ResultStatus.FAILED, diagnostic or None)

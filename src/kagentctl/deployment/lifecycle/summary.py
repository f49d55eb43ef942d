"""Run summary aggregated by the lifecycle orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .models import (
    BackupArtifact,
    EnvironmentName,
    ExecutionPlan,
    Layer,
    OperationKind,
    OperationResult,
    ReleaseSet,
    ReleaseStatus,
    ResultStatus,
)
from .verification import VerificationOutcome


class RunStatus(Enum):
    """Overall outcome of a lifecycle run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ChangeExtent(Enum):
    """How much of the cluster a run changed."""

    NOTHING = "nothing changed"
    PARTIAL = "partially changed"
    FULL = "fully applied"


EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 2


@dataclass
class RunSummary:
    """End-of-run report for one install, upgrade or uninstall.

    Attributes:
        kind: Lifecycle operation requested
        environment: Environment the run targeted
        releases: Definitions and application releases
        dry_run: Whether the run was a preview
        plan: Ordered layer steps that were decided
        initial_states: Probe results before any operation
        results: One result per attempted or skipped layer, in execution order
        final_states: Probe results after the run (initial states on dry runs)
        verification: Readiness sample after mutation, if taken
        backup: Backup artifact written before destruction
        backup_error: Why the backup could not be captured
        backup_skipped: Backup explicitly skipped (--no-backup or dry run)
        cancelled: Confirmation was denied or the gate refused
        cancel_reason: Human-readable reason for cancellation
        warnings: Non-fatal conditions worth surfacing
        recovery_command: Exact command to run next after a failure
    """

    kind: OperationKind
    environment: EnvironmentName
    releases: ReleaseSet
    dry_run: bool = False
    plan: ExecutionPlan | None = None
    initial_states: dict[Layer, ReleaseStatus] = field(default_factory=dict)
    results: list[OperationResult] = field(default_factory=list)
    final_states: dict[Layer, ReleaseStatus] = field(default_factory=dict)
    verification: VerificationOutcome | None = None
    backup: BackupArtifact | None = None
    backup_error: str | None = None
    backup_skipped: bool = False
    cancelled: bool = False
    cancel_reason: str = ""
    warnings: list[str] = field(default_factory=list)
    recovery_command: str | None = None

    @property
    def status(self) -> RunStatus:
        if self.cancelled:
            return RunStatus.CANCELLED
        if any(r.status is ResultStatus.FAILED for r in self.results):
            return RunStatus.FAILED
        return RunStatus.SUCCEEDED

    @property
    def degraded(self) -> bool:
        return self.verification is not None and self.verification.degraded

    @property
    def change_extent(self) -> ChangeExtent:
        if self.dry_run:
            return ChangeExtent.NOTHING
        attempted = [
            r
            for r in self.results
            if r.status in (ResultStatus.SUCCEEDED, ResultStatus.FAILED)
        ]
        if not attempted:
            return ChangeExtent.NOTHING
        # Steps skipped by request (e.g. --skip-definitions) produce no result
        planned = (
            sum(1 for s in self.plan.steps if s.kind is not None or s.skip_status)
            if self.plan
            else len(self.results)
        )
        if self.status is RunStatus.SUCCEEDED and len(self.results) == planned:
            return ChangeExtent.FULL
        return ChangeExtent.PARTIAL

    @property
    def exit_code(self) -> int:
        if self.status is RunStatus.CANCELLED:
            return EXIT_CANCELLED
        if self.status is RunStatus.FAILED:
            return EXIT_FAILURE
        return EXIT_SUCCESS

    def result_for(self, layer: Layer) -> OperationResult | None:
        return next((r for r in self.results if r.layer is layer), None)

    @property
    def failed_layer(self) -> Layer | None:
        failed = next(
            (r for r in self.results if r.status is ResultStatus.FAILED), None
        )
        return failed.layer if failed else None

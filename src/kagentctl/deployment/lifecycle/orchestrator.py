"""Two-layer release lifecycle orchestration.

This module provides the LifecycleOrchestrator class which coordinates
install, upgrade and uninstall across the definitions layer (custom
resource definitions) and the application layer (workloads). Each run:

1. Resolves the environment
2. Probes both releases (fresh, never cached)
3. Builds an ordered ExecutionPlan from the observed states
4. Consults the SafetyGate and captures a backup (uninstall only)
5. Injects provider credentials (install/upgrade only)
6. Executes the plan layer by layer, aborting on the first failure
7. Samples workload readiness and re-probes both releases

The orchestrator holds no state across runs. The (release, namespace) pair
must not be targeted by two runs at the same time; nothing here locks it.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from kagentctl.utils.console_like import ConsoleLike, coalesce_console

from ..errors import (
    CaptureUnavailable,
    ConfirmationDenied,
    DefinitionsLayerMissing,
    ProbeUnavailable,
)
from .backup import BackupRecorder
from .credentials import CredentialInjector, InjectedCredentials
from .environment import EnvironmentResolver
from .executor import OperationExecutor
from .models import (
    LAYER_ORDER,
    Environment,
    EnvironmentName,
    ExecutionPlan,
    Layer,
    LayerStep,
    Operation,
    OperationKind,
    OperationResult,
    ReleaseSet,
    ReleaseState,
    ReleaseStatus,
    ResultStatus,
)
from .probe import ReleaseStateProbe
from .safety import ConfirmationHandler, ConfirmationRequest, GateVerdict, SafetyGate
from .summary import RunSummary
from .verification import VerificationProbe

DEFINITIONS_REMOVAL_WARNING = (
    "Removing the definitions layer deletes its CustomResourceDefinitions. "
    "Kubernetes garbage-collects every dependent custom resource (Agents, "
    "ModelConfigs, ToolServers, Memories) in all namespaces."
)


# =============================================================================
# Planning
# =============================================================================


def plan_install(
    states: dict[Layer, ReleaseState],
    environment: EnvironmentName,
    *,
    skip_definitions: bool = False,
) -> ExecutionPlan:
    """Order the layer steps for an install.

    Deployed layers are skipped. A Failed layer is repaired with an upgrade,
    since ``helm install`` refuses an existing release name.

    Raises:
        DefinitionsLayerMissing: If definitions are skipped but not deployed
    """
    plan = ExecutionPlan(OperationKind.INSTALL)
    for layer in LAYER_ORDER:
        state = states[layer]
        if layer is Layer.DEFINITIONS and skip_definitions:
            plan.steps.append(_skip_definitions_step(state, environment))
        elif state.status is ReleaseStatus.DEPLOYED:
            plan.steps.append(
                LayerStep(
                    layer,
                    None,
                    reason=f"{state.release.name} is already deployed",
                    skip_status=ResultStatus.SKIPPED_EXISTING,
                )
            )
        elif state.status is ReleaseStatus.FAILED:
            plan.steps.append(
                LayerStep(
                    layer,
                    OperationKind.UPGRADE,
                    reason=f"repair {state.raw_status or 'failed'} release",
                )
            )
        else:
            plan.steps.append(LayerStep(layer, OperationKind.INSTALL))
    return plan


def plan_upgrade(
    states: dict[Layer, ReleaseState],
    environment: EnvironmentName,
    *,
    skip_definitions: bool = False,
) -> ExecutionPlan:
    """Order the layer steps for an upgrade. Absent layers are installed.

    Raises:
        DefinitionsLayerMissing: If definitions are skipped but not deployed
    """
    plan = ExecutionPlan(OperationKind.UPGRADE)
    for layer in LAYER_ORDER:
        state = states[layer]
        if layer is Layer.DEFINITIONS and skip_definitions:
            plan.steps.append(_skip_definitions_step(state, environment))
        elif state.status is ReleaseStatus.ABSENT:
            plan.steps.append(
                LayerStep(layer, OperationKind.INSTALL, reason="not installed yet")
            )
        else:
            plan.steps.append(LayerStep(layer, OperationKind.UPGRADE))
    return plan


def plan_uninstall(
    states: dict[Layer, ReleaseState], *, include_definitions: bool = False
) -> ExecutionPlan:
    """Order the layer steps for an uninstall (application first)."""
    plan = ExecutionPlan(OperationKind.UNINSTALL)
    for layer in reversed(LAYER_ORDER):
        if layer is Layer.DEFINITIONS and not include_definitions:
            plan.steps.append(
                LayerStep(layer, None, reason="kept (pass --include-definitions to remove)")
            )
        else:
            plan.steps.append(LayerStep(layer, OperationKind.UNINSTALL))
    return plan


def _skip_definitions_step(state: ReleaseState, environment: EnvironmentName) -> LayerStep:
    if state.status is not ReleaseStatus.DEPLOYED:
        release = state.release
        raise DefinitionsLayerMissing(release.name, release.namespace, environment.value)
    return LayerStep(Layer.DEFINITIONS, None, reason="skipped by --skip-definitions")


# =============================================================================
# Orchestrator
# =============================================================================


class LifecycleOrchestrator:
    """Coordinates lifecycle operations across both release layers.

    Attributes:
        resolver: Environment resolver
        probe: Release state probe
        gate: Safety gate for destructive operations
        backup: Backup recorder for pre-destructive capture
        injector: Provider credential injector
        executor: Single-operation executor
        verifier: Post-operation readiness probe
        confirm: Caller-owned confirmation callback
        expected_min_ready: Ready instances required for a non-degraded run
        definitions_suffix: Suffix deriving the definitions release name
    """

    def __init__(
        self,
        *,
        resolver: EnvironmentResolver,
        probe: ReleaseStateProbe,
        gate: SafetyGate,
        backup: BackupRecorder,
        injector: CredentialInjector,
        executor: OperationExecutor,
        verifier: VerificationProbe,
        confirm: ConfirmationHandler | None = None,
        console: ConsoleLike | None = None,
        expected_min_ready: int = 1,
        definitions_suffix: str = "-crds",
    ) -> None:
        self.resolver = resolver
        self.probe = probe
        self.gate = gate
        self.backup = backup
        self.injector = injector
        self.executor = executor
        self.verifier = verifier
        self.confirm = confirm
        self.console = coalesce_console(console)
        self.expected_min_ready = expected_min_ready
        self.definitions_suffix = definitions_suffix

    # =========================================================================
    # Public Operations
    # =========================================================================

    def install(
        self,
        env_name: str,
        release_name: str,
        namespace: str,
        *,
        dry_run: bool = False,
        wait: bool = False,
        skip_definitions: bool = False,
    ) -> RunSummary:
        """Install the definitions layer, then the application layer.

        Layers that are already deployed are skipped, so re-running an
        install is a no-op.

        Args:
            env_name: Target environment
            release_name: Base release name (application layer)
            namespace: Kubernetes namespace
            dry_run: Preview without changing the cluster
            wait: Wait for resources to become ready
            skip_definitions: Assume the definitions layer is already deployed

        Returns:
            RunSummary for the run

        Raises:
            UnknownEnvironment: Unsupported environment name
            MissingValuesFile: Values override file missing
            ProbeUnavailable: A release status could not be determined
            DefinitionsLayerMissing: Definitions skipped but not deployed
            MissingCredential: Required provider credential unset
        """
        environment, releases, states = self._prepare(env_name, release_name, namespace)
        plan = plan_install(states, environment.name, skip_definitions=skip_definitions)
        return self._apply(
            plan, environment, releases, states, dry_run=dry_run, wait=wait
        )

    def upgrade(
        self,
        env_name: str,
        release_name: str,
        namespace: str,
        *,
        dry_run: bool = False,
        wait: bool = False,
        skip_definitions: bool = False,
        force: bool = False,
        reset_values: bool = False,
    ) -> RunSummary:
        """Upgrade both layers in order, installing any that are absent.

        A failure of the application layer after the definitions layer was
        upgraded is reported; nothing is rolled back automatically.

        Args:
            env_name: Target environment
            release_name: Base release name (application layer)
            namespace: Kubernetes namespace
            dry_run: Preview without changing the cluster
            wait: Wait for resources to become ready
            skip_definitions: Leave the definitions layer untouched
            force: Force resource updates through replacement
            reset_values: Reset values to the chart defaults before applying

        Returns:
            RunSummary for the run
        """
        environment, releases, states = self._prepare(env_name, release_name, namespace)
        plan = plan_upgrade(states, environment.name, skip_definitions=skip_definitions)
        return self._apply(
            plan,
            environment,
            releases,
            states,
            dry_run=dry_run,
            wait=wait,
            force=force,
            reset_values=reset_values,
        )

    def uninstall(
        self,
        env_name: str,
        release_name: str,
        namespace: str,
        *,
        dry_run: bool = False,
        include_definitions: bool = False,
        force: bool = False,
        keep_history: bool = False,
        capture_backup: bool = True,
    ) -> RunSummary:
        """Uninstall the application layer, then optionally the definitions.

        Args:
            env_name: Target environment
            release_name: Base release name (application layer)
            namespace: Kubernetes namespace
            dry_run: Preview without changing the cluster
            include_definitions: Also remove the definitions layer
            force: Skip bypassable confirmations
            keep_history: Keep release history for later rollback
            capture_backup: Capture the application values before removal

        Returns:
            RunSummary; Cancelled when confirmation is declined or denied
        """
        environment, releases, states = self._prepare(env_name, release_name, namespace)
        plan = plan_uninstall(states, include_definitions=include_definitions)
        summary = self._new_summary(plan, environment, releases, states, dry_run)

        targeted = plan.dispatched
        if not any(states[step.layer].exists for step in targeted):
            self.console.info(
                f"Nothing to uninstall: {release_name} is not installed in {namespace}"
            )
            for step in targeted:
                summary.results.append(
                    OperationResult(
                        self._operation(step, releases, dry_run=dry_run),
                        ResultStatus.SKIPPED_NOT_FOUND,
                        f"release '{releases.for_layer(step.layer).name}' not found",
                    )
                )
            summary.final_states = dict(summary.initial_states)
            return summary

        gate_target = (
            states[Layer.APPLICATION]
            if states[Layer.APPLICATION].exists
            else states[Layer.DEFINITIONS]
        )
        gate_operation = Operation(
            OperationKind.UNINSTALL, releases.application, dry_run=dry_run, force=force
        )
        decision = self.gate.authorize(
            gate_operation,
            environment,
            gate_target.status,
            destroys_definitions=include_definitions,
        )

        if decision.verdict is GateVerdict.DENIED:
            return self._cancel(summary, decision.reason)

        if decision.verdict is GateVerdict.REQUIRES_CONFIRMATION:
            if decision.challenge is None:
                return self._cancel(
                    summary, decision.reason or "confirmation required but no challenge given"
                )
            targets = self._describe_targets(targeted, releases)
            request = ConfirmationRequest(
                action=f"Uninstall {targets} from {environment.name.value}",
                challenge=decision.challenge,
                details=f"Namespace: {namespace}",
                extra_warning=DEFINITIONS_REMOVAL_WARNING if include_definitions else "",
                phrase=decision.phrase,
            )
            if dry_run:
                summary.warnings.append(
                    f"A real run would require {decision.challenge.value} confirmation"
                )
            else:
                try:
                    confirmed = self.confirm is not None and self.confirm(request)
                except ConfirmationDenied as e:
                    return self._cancel(summary, e.message)
                if not confirmed:
                    return self._cancel(summary, ConfirmationDenied(request.action).message)

        if dry_run:
            summary.backup_skipped = True
        elif not capture_backup:
            summary.backup_skipped = True
            summary.warnings.append("Backup skipped (--no-backup)")
        elif states[Layer.APPLICATION].status is ReleaseStatus.DEPLOYED:
            try:
                summary.backup = self.backup.capture(
                    releases.application, environment.name
                )
                self.console.ok(f"Backup saved to {summary.backup.path}")
            except CaptureUnavailable as e:
                summary.backup_error = e.reason
                logger.warning(f"Backup of {e.release_name} unavailable: {e.reason}")
                self.console.warn(f"Backup unavailable, continuing: {e.reason}")

        self._execute_plan(
            summary, plan, environment, releases, states, keep_history=keep_history
        )
        self._finish(summary, environment, releases)
        return summary

    # =========================================================================
    # Run Phases
    # =========================================================================

    def _prepare(
        self, env_name: str, release_name: str, namespace: str
    ) -> tuple[Environment, ReleaseSet, dict[Layer, ReleaseState]]:
        environment = self.resolver.resolve(env_name)
        releases = ReleaseSet.from_base_name(
            release_name, namespace, suffix=self.definitions_suffix
        )
        states = self._probe_all(releases)
        for state in states.values():
            if state.status is ReleaseStatus.UNKNOWN:
                raise ProbeUnavailable(
                    state.release.name, state.release.namespace, state.diagnostic
                )
        return environment, releases, states

    def _probe_all(self, releases: ReleaseSet) -> dict[Layer, ReleaseState]:
        return {layer: self.probe.probe(releases.for_layer(layer)) for layer in LAYER_ORDER}

    def _apply(
        self,
        plan: ExecutionPlan,
        environment: Environment,
        releases: ReleaseSet,
        states: dict[Layer, ReleaseState],
        *,
        dry_run: bool,
        wait: bool,
        force: bool = False,
        reset_values: bool = False,
    ) -> RunSummary:
        summary = self._new_summary(plan, environment, releases, states, dry_run)

        credentials: InjectedCredentials | None = None
        if any(step.layer is Layer.APPLICATION for step in plan.dispatched):
            credentials = self.injector.inject(environment, dry_run=dry_run)
            if credentials.missing:
                summary.warnings.append(
                    f"Credential variables not set: {', '.join(credentials.missing)}"
                )

        self._execute_plan(
            summary,
            plan,
            environment,
            releases,
            states,
            wait=wait,
            force=force,
            reset_values=reset_values,
            credentials=credentials,
        )
        self._finish(summary, environment, releases)
        return summary

    def _execute_plan(
        self,
        summary: RunSummary,
        plan: ExecutionPlan,
        environment: Environment,
        releases: ReleaseSet,
        states: dict[Layer, ReleaseState],
        *,
        wait: bool = False,
        force: bool = False,
        reset_values: bool = False,
        keep_history: bool = False,
        credentials: InjectedCredentials | None = None,
    ) -> None:
        dry_run = summary.dry_run
        definitions_present = states[Layer.DEFINITIONS].exists

        for step in plan.steps:
            release = releases.for_layer(step.layer)

            if step.kind is None:
                logger.info(f"Skipping {release.name}: {step.reason}")
                self.console.info(f"Skipping {release.name}: {step.reason}")
                if step.skip_status is not None:
                    summary.results.append(
                        OperationResult(
                            self._operation(step, releases, dry_run=dry_run, kind=plan.kind),
                            step.skip_status,
                            step.reason,
                        )
                    )
                continue

            operation = Operation(
                step.kind,
                release,
                dry_run=dry_run,
                wait=wait or step.kind is OperationKind.UNINSTALL,
                force=force and step.kind is OperationKind.UPGRADE,
                reset_values=reset_values and step.kind is OperationKind.UPGRADE,
                keep_history=keep_history,
            )

            if (
                step.layer is Layer.APPLICATION
                and step.kind is not OperationKind.UNINSTALL
                and not definitions_present
            ):
                if not dry_run:
                    raise DefinitionsLayerMissing(
                        releases.definitions.name,
                        release.namespace,
                        environment.name.value,
                    )
                # Application templates cannot render against missing CRDs
                summary.results.append(
                    OperationResult(
                        operation,
                        ResultStatus.SUCCEEDED,
                        "preview only: would run after the definitions layer is installed",
                    )
                )
                continue

            if step.layer is Layer.DEFINITIONS and step.kind is OperationKind.UNINSTALL:
                self.console.warn(DEFINITIONS_REMOVAL_WARNING)

            self.console.info(
                f"{step.kind.value.capitalize()} {release.name} ({step.layer.value})"
                f"{' (dry run)' if dry_run else ''}"
            )
            result = self.executor.execute(
                operation,
                environment,
                current=states[step.layer],
                credentials=credentials if step.layer is Layer.APPLICATION else None,
            )
            summary.results.append(result)

            if result.status is ResultStatus.FAILED:
                self.console.error(f"{step.kind.value.capitalize()} of {release.name} failed")
                summary.recovery_command = self._recovery_command(
                    summary, environment, releases
                )
                logger.error(f"Aborting run after failure of {release.name}")
                break

            if step.layer is Layer.DEFINITIONS and result.mutated:
                definitions_present = step.kind is not OperationKind.UNINSTALL
            self.console.ok(f"{release.name}: {result.status.value}")

    def _finish(
        self, summary: RunSummary, environment: Environment, releases: ReleaseSet
    ) -> None:
        if summary.dry_run:
            summary.final_states = dict(summary.initial_states)
            return

        application = summary.result_for(Layer.APPLICATION)
        if (
            application is not None
            and application.mutated
            and application.operation.kind is not OperationKind.UNINSTALL
        ):
            summary.verification = self.verifier.verify(
                releases.application.name,
                releases.application.namespace,
                self.expected_min_ready,
            )
            if summary.verification.degraded:
                self.console.warn(
                    f"Workloads degraded: {summary.verification.describe()}"
                )

        if any(r.mutated or r.status is ResultStatus.FAILED for r in summary.results):
            summary.final_states = {
                layer: state.status for layer, state in self._probe_all(releases).items()
            }
        else:
            summary.final_states = dict(summary.initial_states)

        logger.info(
            f"{summary.kind.value} in {environment.name.value} finished: "
            f"{summary.status.value}, {summary.change_extent.value}"
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _new_summary(
        self,
        plan: ExecutionPlan,
        environment: Environment,
        releases: ReleaseSet,
        states: dict[Layer, ReleaseState],
        dry_run: bool,
    ) -> RunSummary:
        return RunSummary(
            kind=plan.kind,
            environment=environment.name,
            releases=releases,
            dry_run=dry_run,
            plan=plan,
            initial_states={layer: state.status for layer, state in states.items()},
        )

    def _cancel(self, summary: RunSummary, reason: str) -> RunSummary:
        logger.warning(f"Run cancelled: {reason}")
        self.console.warn(f"Cancelled: {reason}")
        summary.cancelled = True
        summary.cancel_reason = reason
        summary.final_states = dict(summary.initial_states)
        return summary

    @staticmethod
    def _operation(
        step: LayerStep,
        releases: ReleaseSet,
        *,
        dry_run: bool,
        kind: OperationKind | None = None,
    ) -> Operation:
        operation_kind = step.kind or kind or OperationKind.INSTALL
        return Operation(operation_kind, releases.for_layer(step.layer), dry_run=dry_run)

    @staticmethod
    def _describe_targets(targets: Iterable[LayerStep], releases: ReleaseSet) -> str:
        return " and ".join(releases.for_layer(step.layer).name for step in targets)

    @staticmethod
    def _recovery_command(
        summary: RunSummary,
        environment: Environment,
        releases: ReleaseSet,
    ) -> str:
        app = releases.application
        base = (
            f"--env {environment.name.value} --namespace {app.namespace} "
            f"--release-name {app.name}"
        )
        if summary.kind is OperationKind.UNINSTALL:
            return f"kagentctl uninstall {base}"
        definitions_changed = any(
            r.layer is Layer.DEFINITIONS and r.mutated for r in summary.results
        )
        if (
            summary.kind is OperationKind.UPGRADE
            and summary.failed_layer is Layer.APPLICATION
            and summary.initial_states.get(Layer.APPLICATION) is ReleaseStatus.DEPLOYED
        ):
            return (
                f"kagentctl rollback {base} --layer application "
                f"(or fix the error and re-run: kagentctl upgrade {base})"
            )
        if definitions_changed:
            return f"kagentctl {summary.kind.value} {base} --skip-definitions"
        return f"kagentctl {summary.kind.value} {base}"


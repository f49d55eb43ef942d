"""Tests for the lifecycle orchestrator state machine."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from kagentctl.deployment.errors import (
    DefinitionsLayerMissing,
    MissingCredential,
    MissingValuesFile,
    ProbeUnavailable,
    UnknownEnvironment,
)
from kagentctl.deployment.lifecycle import (
    ChangeExtent,
    Challenge,
    EnvironmentName,
    GateDecision,
    GateVerdict,
    Layer,
    LifecycleOrchestrator,
    OperationKind,
    Release,
    ReleaseState,
    ReleaseStatus,
    ResultStatus,
    RunStatus,
    plan_install,
    plan_uninstall,
    plan_upgrade,
)
from kagentctl.deployment.shell_commands.types import CommandResult
from kagentctl.infra.k8s import DeploymentReadiness

from tests.fixtures.helm import FakeHelm

APP = "sre-kagent"
CRDS = "sre-kagent-crds"
NS = "kagent"

ALL_ENVS = [e.value for e in EnvironmentName]


def _states(definitions: ReleaseStatus, application: ReleaseStatus) -> dict[Layer, ReleaseState]:
    return {
        Layer.DEFINITIONS: ReleaseState(Release(CRDS, NS, Layer.DEFINITIONS), definitions),
        Layer.APPLICATION: ReleaseState(Release(APP, NS, Layer.APPLICATION), application),
    }


# =============================================================================
# Planning
# =============================================================================


class TestPlanning:
    """Layer ordering is declared by the plan, not by execution side effects."""

    def test_install_plan_orders_definitions_first(self) -> None:
        plan = plan_install(
            _states(ReleaseStatus.ABSENT, ReleaseStatus.ABSENT), EnvironmentName.DEVELOPMENT
        )

        assert plan.layers == [Layer.DEFINITIONS, Layer.APPLICATION]
        assert [s.kind for s in plan.steps] == [OperationKind.INSTALL, OperationKind.INSTALL]

    def test_install_plan_skips_deployed_layers(self) -> None:
        plan = plan_install(
            _states(ReleaseStatus.DEPLOYED, ReleaseStatus.ABSENT), EnvironmentName.DEVELOPMENT
        )

        assert plan.steps[0].kind is None
        assert plan.steps[0].skip_status is ResultStatus.SKIPPED_EXISTING
        assert plan.steps[1].kind is OperationKind.INSTALL

    def test_install_plan_repairs_failed_layer_with_upgrade(self) -> None:
        plan = plan_install(
            _states(ReleaseStatus.DEPLOYED, ReleaseStatus.FAILED), EnvironmentName.DEVELOPMENT
        )

        assert plan.steps[1].kind is OperationKind.UPGRADE

    def test_upgrade_plan_installs_absent_layers(self) -> None:
        plan = plan_upgrade(
            _states(ReleaseStatus.ABSENT, ReleaseStatus.DEPLOYED), EnvironmentName.STAGING
        )

        assert plan.layers == [Layer.DEFINITIONS, Layer.APPLICATION]
        assert [s.kind for s in plan.steps] == [OperationKind.INSTALL, OperationKind.UPGRADE]

    def test_uninstall_plan_orders_application_first(self) -> None:
        plan = plan_uninstall(
            _states(ReleaseStatus.DEPLOYED, ReleaseStatus.DEPLOYED), include_definitions=True
        )

        assert plan.layers == [Layer.APPLICATION, Layer.DEFINITIONS]
        assert [s.kind for s in plan.dispatched] == [
            OperationKind.UNINSTALL,
            OperationKind.UNINSTALL,
        ]

    def test_uninstall_plan_keeps_definitions_by_default(self) -> None:
        plan = plan_uninstall(_states(ReleaseStatus.DEPLOYED, ReleaseStatus.DEPLOYED))

        assert [s.layer for s in plan.dispatched] == [Layer.APPLICATION]
        assert plan.steps[1].kind is None

    @pytest.mark.parametrize("status", [ReleaseStatus.ABSENT, ReleaseStatus.FAILED])
    def test_skip_definitions_requires_deployed_definitions(
        self, status: ReleaseStatus
    ) -> None:
        with pytest.raises(DefinitionsLayerMissing) as excinfo:
            plan_install(
                _states(status, ReleaseStatus.ABSENT),
                EnvironmentName.STAGING,
                skip_definitions=True,
            )

        assert "--env staging" in (excinfo.value.details or "")

    def test_skip_definitions_with_deployed_definitions(self) -> None:
        plan = plan_upgrade(
            _states(ReleaseStatus.DEPLOYED, ReleaseStatus.DEPLOYED),
            EnvironmentName.DEVELOPMENT,
            skip_definitions=True,
        )

        assert [s.layer for s in plan.dispatched] == [Layer.APPLICATION]


# =============================================================================
# Scenarios
# =============================================================================


class TestScenarios:
    """End-to-end runs against the in-memory helm."""

    def test_fresh_install_in_development(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        """Both layers absent: definitions then application are installed."""
        summary = orchestrator.install("development", APP, NS)

        assert fake_helm.mutations == [("install", CRDS), ("install", APP)]
        assert summary.final_states == {
            Layer.DEFINITIONS: ReleaseStatus.DEPLOYED,
            Layer.APPLICATION: ReleaseStatus.DEPLOYED,
        }
        assert summary.status is RunStatus.SUCCEEDED
        assert summary.change_extent is ChangeExtent.FULL
        assert summary.exit_code == 0

    def test_production_definitions_removal_without_phrase_is_cancelled(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
        backup_dir: Path,
    ) -> None:
        """Production uninstall of both layers without the phrase changes nothing."""
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.uninstall(
            "production", APP, NS, include_definitions=True
        )

        assert summary.status is RunStatus.CANCELLED
        assert summary.exit_code == 2
        assert fake_helm.mutations == []
        assert ("get_values", APP) not in fake_helm.calls
        assert summary.backup is None
        assert not backup_dir.exists()
        assert summary.change_extent is ChangeExtent.NOTHING
        request = confirm.call_args[0][0]
        assert request.challenge is Challenge.EXACT_PHRASE

    def test_staging_upgrade_installs_missing_definitions_first(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {APP: "deployed"}

        summary = orchestrator.upgrade("staging", APP, NS)

        assert fake_helm.mutations == [("install", CRDS), ("upgrade", APP)]
        assert summary.final_states == {
            Layer.DEFINITIONS: ReleaseStatus.DEPLOYED,
            Layer.APPLICATION: ReleaseStatus.DEPLOYED,
        }
        assert summary.exit_code == 0

    def test_application_failure_after_definitions_upgrade_is_not_rolled_back(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        fake_helm.failures[("upgrade", APP)] = "Error: UPGRADE FAILED: context deadline exceeded"

        summary = orchestrator.upgrade("development", APP, NS)

        assert summary.status is RunStatus.FAILED
        assert summary.exit_code == 1
        assert summary.final_states[Layer.DEFINITIONS] is ReleaseStatus.DEPLOYED
        assert fake_helm.mutations == [("upgrade", CRDS), ("upgrade", APP)]
        assert summary.change_extent is ChangeExtent.PARTIAL
        assert summary.result_for(Layer.APPLICATION).diagnostic == (  # type: ignore[union-attr]
            "Error: UPGRADE FAILED: context deadline exceeded"
        )
        assert summary.recovery_command is not None
        assert "kagentctl rollback" in summary.recovery_command
        assert "--env development" in summary.recovery_command


# =============================================================================
# Install
# =============================================================================


class TestInstall:
    @pytest.mark.parametrize("env", ALL_ENVS)
    def test_install_when_deployed_is_a_no_op(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm, env: str
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.install(env, APP, NS)

        assert fake_helm.mutations == []
        assert [r.status for r in summary.results] == [
            ResultStatus.SKIPPED_EXISTING,
            ResultStatus.SKIPPED_EXISTING,
        ]
        assert all(r.status.is_success for r in summary.results)
        assert summary.exit_code == 0
        assert summary.change_extent is ChangeExtent.NOTHING

    def test_definitions_failure_aborts_before_application(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.failures[("install", CRDS)] = "Error: INSTALLATION FAILED"

        summary = orchestrator.install("development", APP, NS)

        assert fake_helm.mutations == [("install", CRDS)]
        assert summary.result_for(Layer.APPLICATION) is None
        assert summary.exit_code == 1
        assert summary.recovery_command is not None
        assert summary.recovery_command.startswith("kagentctl install")

    def test_credentials_reach_only_the_application_layer(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm, project_root: Path
    ) -> None:
        orchestrator.install("development", APP, NS)

        assert fake_helm.kwargs[("install", CRDS)]["set_string"] == {}
        assert fake_helm.kwargs[("install", CRDS)]["value_files"] == []
        assert fake_helm.kwargs[("install", APP)]["set_string"] == {
            "providers.openAI.apiKey": "sk-test-key"
        }
        assert fake_helm.kwargs[("install", APP)]["value_files"] == [
            project_root / "env" / "dev" / "values.yaml"
        ]

    def test_layer_timeouts(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        orchestrator.install("development", APP, NS, wait=True)

        assert fake_helm.kwargs[("install", CRDS)]["timeout"] == "300s"
        assert fake_helm.kwargs[("install", APP)]["timeout"] == "600s"
        assert fake_helm.kwargs[("install", APP)]["wait"] is True

    def test_failed_application_is_repaired_with_upgrade(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "pending-install"}

        summary = orchestrator.install("development", APP, NS)

        assert fake_helm.mutations == [("upgrade", APP)]
        assert summary.final_states[Layer.APPLICATION] is ReleaseStatus.DEPLOYED

    def test_release_kept_in_history_is_reinstalled_with_replace(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "uninstalled"}

        orchestrator.install("development", APP, NS)

        assert fake_helm.kwargs[("install", APP)]["replace"] is True

    def test_skip_definitions_with_absent_definitions_makes_no_change(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        with pytest.raises(DefinitionsLayerMissing):
            orchestrator.install("development", APP, NS, skip_definitions=True)

        assert fake_helm.mutations == []

    def test_missing_production_credentials_abort_before_mutation(
        self,
        make_orchestrator: Callable[..., LifecycleOrchestrator],
        fake_helm: FakeHelm,
    ) -> None:
        orchestrator = make_orchestrator(environ={})

        with pytest.raises(MissingCredential) as excinfo:
            orchestrator.install("production", APP, NS)

        assert excinfo.value.variables == ("OPENAI_API_KEY",)
        assert fake_helm.mutations == []

    def test_missing_development_credentials_only_warn(
        self,
        make_orchestrator: Callable[..., LifecycleOrchestrator],
        fake_helm: FakeHelm,
    ) -> None:
        orchestrator = make_orchestrator(environ={})

        summary = orchestrator.install("development", APP, NS)

        assert summary.exit_code == 0
        assert any("OPENAI_API_KEY" in w for w in summary.warnings)
        assert fake_helm.kwargs[("install", APP)]["set_string"] == {}


# =============================================================================
# Upgrade
# =============================================================================


class TestUpgrade:
    @pytest.mark.parametrize("env", ALL_ENVS)
    def test_upgrade_on_absent_layers_installs_them(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm, env: str
    ) -> None:
        summary = orchestrator.upgrade(env, APP, NS)

        assert fake_helm.mutations == [("install", CRDS), ("install", APP)]
        assert set(summary.final_states.values()) == {ReleaseStatus.DEPLOYED}

    def test_force_and_reset_values_are_passed_to_upgrades(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        orchestrator.upgrade("development", APP, NS, force=True, reset_values=True)

        assert fake_helm.kwargs[("upgrade", APP)]["force"] is True
        assert fake_helm.kwargs[("upgrade", APP)]["reset_values"] is True

    def test_skip_definitions_leaves_definitions_untouched(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.upgrade("development", APP, NS, skip_definitions=True)

        assert fake_helm.mutations == [("upgrade", APP)]
        assert summary.result_for(Layer.DEFINITIONS) is None
        assert summary.change_extent is ChangeExtent.FULL

    def test_degraded_verification_does_not_fail_the_run(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        k8s_controller: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        k8s_controller.get_deployment_readiness.return_value = [
            DeploymentReadiness(name="kagent-controller", desired=1, ready=0)
        ]

        summary = orchestrator.upgrade("development", APP, NS)

        assert summary.status is RunStatus.SUCCEEDED
        assert summary.degraded is True
        assert summary.exit_code == 0
        k8s_controller.get_deployment_readiness.assert_called_once_with(
            NS, "app.kubernetes.io/instance=sre-kagent"
        )


# =============================================================================
# Uninstall
# =============================================================================


class TestUninstall:
    def test_uninstall_without_definitions_keeps_definitions(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS)

        assert fake_helm.mutations == [("uninstall", APP)]
        assert summary.final_states[Layer.DEFINITIONS] is ReleaseStatus.DEPLOYED
        assert summary.final_states[Layer.APPLICATION] is ReleaseStatus.ABSENT
        assert summary.exit_code == 0

    def test_include_definitions_removes_application_first(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("staging", APP, NS, include_definitions=True)

        assert fake_helm.mutations == [("uninstall", APP), ("uninstall", CRDS)]
        assert set(summary.final_states.values()) == {ReleaseStatus.ABSENT}
        assert summary.change_extent is ChangeExtent.FULL

    def test_include_definitions_with_absent_application(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS, include_definitions=True)

        assert fake_helm.mutations == [("uninstall", CRDS)]
        assert summary.result_for(Layer.APPLICATION).status is (  # type: ignore[union-attr]
            ResultStatus.SKIPPED_NOT_FOUND
        )
        assert summary.backup is None

    def test_nothing_installed_short_circuits_without_prompt(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        summary = orchestrator.uninstall("production", APP, NS, include_definitions=True)

        confirm.assert_not_called()
        assert fake_helm.mutations == []
        assert {r.status for r in summary.results} == {ResultStatus.SKIPPED_NOT_FOUND}
        assert summary.exit_code == 0

    def test_declined_confirmation_cancels(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.uninstall("development", APP, NS)

        assert confirm.call_args[0][0].challenge is Challenge.YES_NO
        assert summary.status is RunStatus.CANCELLED
        assert fake_helm.mutations == []

    def test_force_bypasses_non_production_confirmation(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.uninstall(
            "staging", APP, NS, include_definitions=True, force=True
        )

        confirm.assert_not_called()
        assert summary.exit_code == 0

    def test_force_never_bypasses_production_phrase(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.uninstall(
            "production", APP, NS, include_definitions=True, force=True
        )

        request = confirm.call_args[0][0]
        assert request.challenge is Challenge.EXACT_PHRASE
        assert request.phrase == "delete sre-kagent in production"
        assert request.extra_warning
        assert summary.status is RunStatus.CANCELLED

    def test_production_phrase_confirmed_removes_both_layers(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("production", APP, NS, include_definitions=True)

        assert fake_helm.mutations == [("uninstall", APP), ("uninstall", CRDS)]
        assert summary.status is RunStatus.SUCCEEDED

    def test_backup_is_captured_before_uninstall_and_masks_credentials(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS)

        assert fake_helm.calls.index(("get_values", APP)) < fake_helm.calls.index(
            ("uninstall", APP)
        )
        assert summary.backup is not None
        assert summary.backup.path.name == (
            "sre-kagent-development-backup-20250304T050607Z.yaml"
        )
        content = summary.backup.path.read_text()
        assert "sk-live-secret" not in content
        document = yaml.safe_load(content)
        assert document["values"]["providers"]["openAI"]["apiKey"] == "***"
        assert document["release"] == APP

    def test_backup_failure_is_not_fatal(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        fake_helm.get_values = MagicMock(  # type: ignore[method-assign]
            return_value=CommandResult(success=False, stderr="forbidden", returncode=1)
        )
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS)

        assert summary.backup is None
        assert summary.backup_error == "forbidden"
        assert fake_helm.mutations == [("uninstall", APP)]
        assert summary.exit_code == 0

    def test_no_backup_skips_capture(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS, capture_backup=False)

        assert ("get_values", APP) not in fake_helm.calls
        assert summary.backup_skipped is True

    def test_keep_history_is_passed_to_helm(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        confirm.return_value = True

        orchestrator.uninstall("development", APP, NS, keep_history=True)

        assert fake_helm.kwargs[("uninstall", APP)]["keep_history"] is True
        assert fake_helm.statuses[APP] == "uninstalled"

    def test_application_failure_keeps_definitions(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        fake_helm.failures[("uninstall", APP)] = "Error: timed out waiting for the condition"
        confirm.return_value = True

        summary = orchestrator.uninstall("development", APP, NS, include_definitions=True)

        assert fake_helm.mutations == [("uninstall", APP)]
        assert summary.final_states[Layer.DEFINITIONS] is ReleaseStatus.DEPLOYED
        assert summary.exit_code == 1
        assert summary.recovery_command is not None
        assert summary.recovery_command.startswith("kagentctl uninstall")

    def test_confirmation_without_challenge_cancels(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}
        orchestrator.gate = MagicMock()
        orchestrator.gate.authorize.return_value = GateDecision(
            GateVerdict.REQUIRES_CONFIRMATION
        )

        summary = orchestrator.uninstall("development", APP, NS)

        confirm.assert_not_called()
        assert fake_helm.mutations == []
        assert summary.status is RunStatus.CANCELLED
        assert summary.exit_code == 2


# =============================================================================
# Dry Run
# =============================================================================


class TestDryRun:
    def test_dry_run_install_changes_nothing(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        summary = orchestrator.install("development", APP, NS, dry_run=True)

        assert fake_helm.statuses == {}
        assert fake_helm.kwargs[("install", CRDS)]["dry_run"] is True
        # Application cannot render before its definitions exist
        assert ("install", APP) not in fake_helm.calls
        assert summary.result_for(Layer.APPLICATION).status is ResultStatus.SUCCEEDED  # type: ignore[union-attr]
        assert summary.change_extent is ChangeExtent.NOTHING
        assert summary.verification is None

    def test_dry_run_upgrade_changes_nothing(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.upgrade("staging", APP, NS, dry_run=True)

        assert fake_helm.statuses == {CRDS: "deployed", APP: "deployed"}
        assert fake_helm.kwargs[("upgrade", APP)]["dry_run"] is True
        assert summary.final_states == summary.initial_states

    def test_dry_run_uninstall_never_prompts_or_backs_up(
        self,
        orchestrator: LifecycleOrchestrator,
        fake_helm: FakeHelm,
        confirm: MagicMock,
        backup_dir: Path,
    ) -> None:
        fake_helm.statuses = {CRDS: "deployed", APP: "deployed"}

        summary = orchestrator.uninstall(
            "production", APP, NS, include_definitions=True, dry_run=True
        )

        confirm.assert_not_called()
        assert summary.backup is None
        assert not backup_dir.exists()
        assert fake_helm.statuses == {CRDS: "deployed", APP: "deployed"}
        assert any("exact-phrase" in w for w in summary.warnings)
        assert summary.exit_code == 0

    def test_dry_run_downgrades_missing_credentials(
        self,
        make_orchestrator: Callable[..., LifecycleOrchestrator],
        fake_helm: FakeHelm,
    ) -> None:
        orchestrator = make_orchestrator(environ={})

        summary = orchestrator.upgrade("production", APP, NS, dry_run=True)

        assert summary.exit_code == 0
        assert fake_helm.statuses == {}


# =============================================================================
# Prerequisites
# =============================================================================


class TestPrerequisites:
    def test_unknown_environment(self, orchestrator: LifecycleOrchestrator) -> None:
        with pytest.raises(UnknownEnvironment):
            orchestrator.install("qa", APP, NS)

    def test_missing_values_file(
        self, orchestrator: LifecycleOrchestrator, project_root: Path, fake_helm: FakeHelm
    ) -> None:
        (project_root / "env" / "staging" / "values.yaml").unlink()

        with pytest.raises(MissingValuesFile):
            orchestrator.upgrade("staging", APP, NS)

        assert fake_helm.calls == []

    @pytest.mark.parametrize("kind", ["install", "upgrade", "uninstall"])
    def test_unreachable_cluster_aborts_before_mutation(
        self, orchestrator: LifecycleOrchestrator, fake_helm: FakeHelm, kind: str
    ) -> None:
        fake_helm.unreachable = True

        with pytest.raises(ProbeUnavailable) as excinfo:
            getattr(orchestrator, kind)("development", APP, NS)

        assert "cluster unreachable" in excinfo.value.diagnostic
        assert fake_helm.mutations == []

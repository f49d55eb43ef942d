"""Fixtures for lifecycle tests: an in-memory helm and a wired orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from kagentctl.config import OrchestratorSettings
from kagentctl.deployment.lifecycle import (
    CREDENTIAL_RULES,
    BackupRecorder,
    CredentialInjector,
    EnvironmentResolver,
    Layer,
    LayerProfile,
    LifecycleOrchestrator,
    OperationExecutor,
    ReleaseStateProbe,
    SafetyGate,
    VerificationProbe,
)
from kagentctl.infra.k8s import DeploymentReadiness
from tests.fixtures.helm import FIXED_NOW, FakeHelm


@pytest.fixture
def fake_helm() -> FakeHelm:
    return FakeHelm()


@pytest.fixture
def k8s_controller() -> MagicMock:
    controller = MagicMock()
    controller.get_deployment_readiness = AsyncMock(
        return_value=[DeploymentReadiness(name="kagent", desired=1, ready=1)]
    )
    return controller


@pytest.fixture
def confirm() -> MagicMock:
    """Confirmation callback that declines unless reconfigured."""
    return MagicMock(return_value=False)


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    return tmp_path / "backups"


@pytest.fixture
def make_orchestrator(
    fake_helm: FakeHelm,
    k8s_controller: MagicMock,
    confirm: MagicMock,
    settings: OrchestratorSettings,
    project_root: Path,
    backup_dir: Path,
) -> Callable[..., LifecycleOrchestrator]:
    """Factory wiring real lifecycle components around the fakes."""

    def _make(environ: dict[str, str] | None = None) -> LifecycleOrchestrator:
        profiles = {
            Layer.DEFINITIONS: LayerProfile("charts/sre-kagent-crds", "300s", False),
            Layer.APPLICATION: LayerProfile("charts/sre-kagent-base", "600s", True),
        }
        return LifecycleOrchestrator(
            resolver=EnvironmentResolver(settings, project_root),
            probe=ReleaseStateProbe(fake_helm),  # type: ignore[arg-type]
            gate=SafetyGate(),
            backup=BackupRecorder(
                fake_helm,  # type: ignore[arg-type]
                backup_dir,
                clock=lambda: FIXED_NOW,
                masked_paths=[r.value_path for r in CREDENTIAL_RULES.values()],
            ),
            injector=CredentialInjector(
                environ={"OPENAI_API_KEY": "sk-test-key"} if environ is None else environ
            ),
            executor=OperationExecutor(fake_helm, profiles),  # type: ignore[arg-type]
            verifier=VerificationProbe(k8s_controller, delay_seconds=0),
            confirm=confirm,
            console=MagicMock(),
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., LifecycleOrchestrator]) -> LifecycleOrchestrator:
    return make_orchestrator()

"""Fixtures for CLI tests: a CLIContext wired around the in-memory helm."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from loguru import logger
from rich.console import Console
from typer.testing import CliRunner

from kagentctl.cli.context import CLIContext
from kagentctl.cli.shared import CLIConsole
from kagentctl.config import OrchestratorSettings
from kagentctl.deployment.constants import DeploymentConstants, DeploymentPaths
from kagentctl.infra.k8s import CommandResult, DeploymentReadiness
from tests.fixtures.helm import FakeHelm


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_helm() -> FakeHelm:
    return FakeHelm()


@pytest.fixture
def k8s_controller(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the cluster read backend used by the CLI."""
    controller = MagicMock()
    controller.get_deployment_readiness = AsyncMock(
        return_value=[DeploymentReadiness(name="kagent", desired=1, ready=1)]
    )
    controller.get_current_context = AsyncMock(return_value="kind-kagent")
    controller.get_pod_logs = AsyncMock(
        return_value=CommandResult(
            success=True,
            stdout="[pod/sre-kagent-7d9f/controller] INFO agent ready",
        )
    )
    factory = MagicMock(return_value=controller)
    monkeypatch.setattr("kagentctl.cli.context.get_k8s_controller", factory)
    monkeypatch.setattr("kagentctl.cli.commands.release.get_k8s_controller", factory)
    return controller


@pytest.fixture
def make_cli_context(
    project_root: Path,
    settings: OrchestratorSettings,
    k8s_controller: MagicMock,
) -> Callable[[Any], CLIContext]:
    """Factory building a CLIContext around a given helm double."""

    def _make(helm: Any) -> CLIContext:
        return CLIContext(
            console=CLIConsole(Console(width=200)),
            project_root=project_root,
            settings=settings,
            commands=SimpleNamespace(helm=helm),  # type: ignore[arg-type]
            constants=DeploymentConstants(),
            paths=DeploymentPaths(project_root),
        )

    return _make


@pytest.fixture
def cli_context(
    make_cli_context: Callable[[Any], CLIContext], fake_helm: FakeHelm
) -> CLIContext:
    return make_cli_context(fake_helm)


@pytest.fixture(autouse=True)
def provider_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop sinks bound to CliRunner's streams once a test finishes."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")

"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from kagentctl.config import OrchestratorSettings
from kagentctl.deployment.lifecycle import (
    Environment,
    EnvironmentName,
    ReleaseSet,
    Tier,
)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A project tree with the default per-environment values files."""
    for env_dir in ("dev", "staging", "prod"):
        values = tmp_path / "env" / env_dir / "values.yaml"
        values.parent.mkdir(parents=True)
        values.write_text("kagent:\n  replicaCount: 1\n")
    return tmp_path


@pytest.fixture
def settings() -> OrchestratorSettings:
    return OrchestratorSettings(verification={"delay_seconds": 0})


@pytest.fixture
def releases() -> ReleaseSet:
    return ReleaseSet.from_base_name("sre-kagent", "kagent")


@pytest.fixture
def dev_environment(project_root: Path) -> Environment:
    return Environment(
        name=EnvironmentName.DEVELOPMENT,
        tier=Tier.NON_PRODUCTION,
        values_file=project_root / "env" / "dev" / "values.yaml",
        credential_providers=("openai",),
    )


@pytest.fixture
def prod_environment(project_root: Path) -> Environment:
    return Environment(
        name=EnvironmentName.PRODUCTION,
        tier=Tier.PRODUCTION,
        values_file=project_root / "env" / "prod" / "values.yaml",
        credential_providers=("openai",),
        require_credentials=True,
    )

"""Data types for the release lifecycle.

Environments, releases, operations and their results. Everything here is
constructed per invocation; only BackupArtifact describes persisted state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class EnvironmentName(str, Enum):
    """Supported deployment environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Tier(str, Enum):
    """Destructiveness tier of an environment."""

    NON_PRODUCTION = "non-production"
    PRODUCTION = "production"


class Layer(str, Enum):
    """Layers of the release set."""

    DEFINITIONS = "definitions"
    APPLICATION = "application"


# Install/upgrade order. Uninstall walks it in reverse.
LAYER_ORDER: tuple[Layer, ...] = (Layer.DEFINITIONS, Layer.APPLICATION)


class ReleaseStatus(str, Enum):
    """Observed status of a release."""

    ABSENT = "absent"
    DEPLOYED = "deployed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class OperationKind(str, Enum):
    """Lifecycle operations."""

    INSTALL = "install"
    UPGRADE = "upgrade"
    UNINSTALL = "uninstall"

    @property
    def is_destructive(self) -> bool:
        return self is OperationKind.UNINSTALL


class ResultStatus(str, Enum):
    """Outcome of a single operation."""

    SUCCEEDED = "succeeded"
    SKIPPED_NOT_FOUND = "skipped-not-found"
    SKIPPED_EXISTING = "skipped-existing"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_success(self) -> bool:
        return self in (
            ResultStatus.SUCCEEDED,
            ResultStatus.SKIPPED_NOT_FOUND,
            ResultStatus.SKIPPED_EXISTING,
        )


@dataclass(frozen=True)
class Environment:
    """A resolved environment.

    Attributes:
        name: Environment identity
        tier: Production or non-production
        values_file: Values override merged into the application layer
        credential_providers: Provider keys injected by CredentialInjector
        require_credentials: Whether missing provider variables are fatal
    """

    name: EnvironmentName
    tier: Tier
    values_file: Path
    credential_providers: tuple[str, ...] = ()
    require_credentials: bool = False

    @property
    def is_production(self) -> bool:
        return self.tier is Tier.PRODUCTION


@dataclass(frozen=True)
class Release:
    """A named, namespaced release in one layer."""

    name: str
    namespace: str
    layer: Layer


@dataclass(frozen=True)
class ReleaseSet:
    """The two releases making up one deployment of the application."""

    definitions: Release
    application: Release

    @classmethod
    def from_base_name(
        cls, release_name: str, namespace: str, suffix: str = "-crds"
    ) -> ReleaseSet:
        """Derive both releases from the base release name."""
        return cls(
            definitions=Release(f"{release_name}{suffix}", namespace, Layer.DEFINITIONS),
            application=Release(release_name, namespace, Layer.APPLICATION),
        )

    def for_layer(self, layer: Layer) -> Release:
        return self.definitions if layer is Layer.DEFINITIONS else self.application


@dataclass(frozen=True)
class ReleaseState:
    """Result of probing one release.

    Attributes:
        release: The probed release
        status: Normalized status
        raw_status: Status string reported by helm (e.g. "pending-upgrade")
        revision: Current revision, if the release exists
        diagnostic: Error output when the status is UNKNOWN
    """

    release: Release
    status: ReleaseStatus
    raw_status: str = ""
    revision: int | None = None
    diagnostic: str = ""

    @property
    def exists(self) -> bool:
        """Whether there is something to upgrade or uninstall."""
        return self.status in (ReleaseStatus.DEPLOYED, ReleaseStatus.FAILED)

    @property
    def in_history_only(self) -> bool:
        """Uninstalled with --keep-history; reinstall needs --replace."""
        return self.status is ReleaseStatus.ABSENT and self.raw_status == "uninstalled"


@dataclass(frozen=True)
class Operation:
    """A request to perform one lifecycle operation against one release."""

    kind: OperationKind
    release: Release
    dry_run: bool = False
    wait: bool = False
    force: bool = False
    reset_values: bool = False
    keep_history: bool = False


@dataclass
class OperationResult:
    """Outcome of one Operation."""

    operation: Operation
    status: ResultStatus
    diagnostic: str | None = None

    @property
    def layer(self) -> Layer:
        return self.operation.release.layer

    @property
    def mutated(self) -> bool:
        """Whether this result changed cluster state."""
        return self.status is ResultStatus.SUCCEEDED and not self.operation.dry_run


@dataclass(frozen=True)
class BackupArtifact:
    """A point-in-time snapshot of a release's resolved configuration."""

    release: Release
    environment: EnvironmentName
    path: Path
    created_at: datetime


@dataclass(frozen=True)
class LayerStep:
    """One entry of an ordered execution plan.

    ``kind`` is None when the layer is skipped; ``reason`` then says why.
    """

    layer: Layer
    kind: OperationKind | None
    reason: str = ""
    skip_status: ResultStatus | None = None


@dataclass
class ExecutionPlan:
    """Ordered layer steps for one lifecycle run."""

    kind: OperationKind
    steps: list[LayerStep] = field(default_factory=list)

    @property
    def layers(self) -> list[Layer]:
        return [step.layer for step in self.steps]

    @property
    def dispatched(self) -> list[LayerStep]:
        return [step for step in self.steps if step.kind is not None]

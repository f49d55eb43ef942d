"""Abstract Kubernetes controller interface.

Defines the contract for the Kubernetes reads the orchestrator needs, which
can be implemented by different backends (kubectl subprocess, kr8s library).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


@dataclass
class DeploymentReadiness:
    """Replica readiness of one Kubernetes Deployment."""

    name: str
    desired: int
    ready: int

    @property
    def is_ready(self) -> bool:
        return self.ready >= self.desired


class KubernetesUnavailable(Exception):
    """Raised when the cluster API cannot be reached or queried."""


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for Kubernetes operations.

    All methods are async to support both sync (kubectl) and async (kr8s)
    implementations. Use `run_sync()` to call from synchronous code.

    Example:
        from kagentctl.infra.k8s import KubectlController, run_sync

        controller = KubectlController(request_timeout=10.0)
        deployments = run_sync(
            controller.get_deployment_readiness("kagent", "app=kagent")
        )
    """

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current kubectl context name.

        Returns:
            Context name, or "unknown" if detection fails
        """
        ...

    @abstractmethod
    async def get_deployment_readiness(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[DeploymentReadiness]:
        """List deployments with their desired and ready replica counts.

        Args:
            namespace: Kubernetes namespace to search
            label_selector: Optional label selector to filter deployments

        Returns:
            List of DeploymentReadiness entries (empty if none match)

        Raises:
            KubernetesUnavailable: If the cluster cannot be queried
        """
        ...

    @abstractmethod
    async def get_pod_logs(
        self,
        namespace: str,
        *,
        label_selector: str | None = None,
        container: str | None = None,
        tail: int = 50,
        previous: bool = False,
    ) -> CommandResult:
        """Get recent logs from the pods matching a label selector.

        Args:
            namespace: Kubernetes namespace
            label_selector: Label selector for pods (all pods if None)
            container: Container name (if pods have multiple containers)
            tail: Number of lines to show from the end, per pod
            previous: Show logs from the previous container instance

        Returns:
            CommandResult with logs in stdout
        """
        ...

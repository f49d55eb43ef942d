"""Kubernetes infrastructure abstraction layer.

This module provides an abstraction over the Kubernetes reads used for
post-operation verification, supporting multiple backends (kubectl
subprocess, kr8s library).

Example:
    from kagentctl.infra.k8s import get_k8s_controller, run_sync

    controller = get_k8s_controller("kubectl")
    deployments = run_sync(controller.get_deployment_readiness("kagent"))
"""

from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore

from .controller import (
    CommandResult,
    DeploymentReadiness,
    KubernetesController,
    KubernetesUnavailable,
)
from .kubectl_controller import KubectlController
from .utils import run_sync


@lru_cache(maxsize=4)
def get_k8s_controller(
    backend: str = "kr8s",
    kubectl_binary: str = "kubectl",
    request_timeout: float = 10.0,
) -> KubernetesController:
    """Get a KubernetesController for the configured backend.

    Args:
        backend: "kr8s" (native API client) or "kubectl" (subprocess)
        kubectl_binary: kubectl executable used by the subprocess backend
        request_timeout: Upper bound in seconds on each cluster read

    Returns:
        An instance of KubernetesController
    """
    if backend == "kubectl":
        return KubectlController(kubectl_binary, request_timeout)

    from .kr8s_controller import Kr8sController

    return Kr8sController(request_timeout)


__all__ = [
    # Controller classes
    "KubernetesController",
    "KubectlController",
    # Data classes
    "CommandResult",
    "DeploymentReadiness",
    "KubernetesUnavailable",
    # Utilities
    "get_k8s_controller",
    "run_sync",
]

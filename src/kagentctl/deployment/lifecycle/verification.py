"""Post-operation readiness verification.

One bounded, non-blocking check: wait a short fixed delay for the cluster
to settle, sample deployment readiness once, and report. The outcome never
fails a run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from kagentctl.infra.k8s import KubernetesController, KubernetesUnavailable, run_sync


class VerificationState(Enum):
    """Readiness signal."""

    READY = "ready"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one readiness sample."""

    state: VerificationState
    actual: int = 0
    expected: int = 0
    detail: str = ""

    @property
    def degraded(self) -> bool:
        return self.state is VerificationState.DEGRADED

    def describe(self) -> str:
        if self.state is VerificationState.READY:
            return f"ready ({self.actual}/{self.expected} instances)"
        if self.state is VerificationState.DEGRADED:
            return f"degraded ({self.actual}/{self.expected} instances ready)"
        return f"unknown ({self.detail or 'verification endpoint unreachable'})"


class VerificationProbe:
    """Samples workload readiness after a mutating operation."""

    def __init__(
        self,
        controller: KubernetesController,
        *,
        delay_seconds: float = 5.0,
        label_selector: str = "app.kubernetes.io/instance={release}",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the probe.

        Args:
            controller: Kubernetes read backend
            delay_seconds: Fixed settle delay before sampling
            label_selector: Selector template; ``{release}`` is substituted
            sleep: Sleep function (injectable for tests)
        """
        self.controller = controller
        self.delay_seconds = delay_seconds
        self.label_selector = label_selector
        self._sleep = sleep

    def verify(
        self, release_name: str, namespace: str, expected_min_ready: int
    ) -> VerificationOutcome:
        """Check that at least ``expected_min_ready`` instances are ready.

        Args:
            release_name: Application release whose workloads are sampled
            namespace: Kubernetes namespace
            expected_min_ready: Minimum ready replicas across matching deployments

        Returns:
            READY, DEGRADED(actual, expected) or UNKNOWN
        """
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

        selector = self.label_selector.format(release=release_name)
        try:
            deployments = run_sync(
                self.controller.get_deployment_readiness(namespace, selector)
            )
        except KubernetesUnavailable as e:
            logger.warning(f"Readiness check unavailable: {e}")
            return VerificationOutcome(
                VerificationState.UNKNOWN, expected=expected_min_ready, detail=str(e)
            )

        actual = sum(d.ready for d in deployments)
        not_ready = [d.name for d in deployments if not d.is_ready]
        logger.debug(
            f"{len(deployments)} deployment(s) match '{selector}', "
            f"{actual} ready replica(s), not ready: {not_ready}"
        )

        if actual >= expected_min_ready:
            return VerificationOutcome(
                VerificationState.READY, actual=actual, expected=expected_min_ready
            )
        return VerificationOutcome(
            VerificationState.DEGRADED,
            actual=actual,
            expected=expected_min_ready,
            detail=", ".join(not_ready),
        )

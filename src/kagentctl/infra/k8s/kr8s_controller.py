"""Kr8s-based implementation of KubernetesController.

Uses the kr8s library for native async Kubernetes operations.
"""

from __future__ import annotations

import asyncio
from typing import Any

import kr8s
from kr8s.asyncio.objects import Deployment, Pod

from .controller import (
    CommandResult,
    DeploymentReadiness,
    KubernetesController,
    KubernetesUnavailable,
)


class Kr8sController(KubernetesController):
    """Kubernetes controller using kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. When using run_sync() which calls asyncio.run(),
    each call creates a new event loop, making a cached API unusable.
    """

    def __init__(self, request_timeout: float = 10.0) -> None:
        self.request_timeout = request_timeout

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client bound to the running event loop."""
        return await kr8s.asyncio.api()

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        try:
            api = await asyncio.wait_for(self._get_api(), timeout=self.request_timeout)
            return api.auth.active_context or "unknown"
        except Exception:
            return "unknown"

    async def get_deployment_readiness(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[DeploymentReadiness]:
        """List deployments with their desired and ready replica counts."""

        async def _list() -> list[Any]:
            api = await self._get_api()
            return [
                d
                async for d in Deployment.list(
                    namespace=namespace,
                    label_selector=label_selector or "",
                    api=api,
                )
            ]

        try:
            deployments = await asyncio.wait_for(_list(), timeout=self.request_timeout)
        except TimeoutError as e:
            raise KubernetesUnavailable(
                f"Kubernetes API did not answer within {self.request_timeout:g}s"
            ) from e
        except Exception as e:
            raise KubernetesUnavailable(str(e)) from e

        return [
            DeploymentReadiness(
                name=d.name,
                desired=int(d.raw.get("spec", {}).get("replicas", 1)),
                ready=int(d.raw.get("status", {}).get("readyReplicas", 0)),
            )
            for d in deployments
        ]

    async def get_pod_logs(
        self,
        namespace: str,
        *,
        label_selector: str | None = None,
        container: str | None = None,
        tail: int = 50,
        previous: bool = False,
    ) -> CommandResult:
        """Get recent logs from the pods matching a label selector."""

        async def _collect() -> str:
            api = await self._get_api()
            lines: list[str] = []
            async for pod in Pod.list(
                namespace=namespace, label_selector=label_selector or "", api=api
            ):
                async for line in pod.logs(
                    container=container, tail_lines=tail, previous=previous
                ):
                    lines.append(f"[pod/{pod.name}] {line}")
            return "\n".join(lines)

        try:
            stdout = await asyncio.wait_for(_collect(), timeout=self.request_timeout)
        except TimeoutError:
            return CommandResult(
                success=False,
                stderr=f"Kubernetes API did not answer within {self.request_timeout:g}s",
                returncode=124,
            )
        except Exception as e:
            return CommandResult(success=False, stderr=str(e), returncode=1)
        return CommandResult(success=True, stdout=stdout)

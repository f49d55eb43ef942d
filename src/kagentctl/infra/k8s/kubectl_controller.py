"""Kubectl-based implementation of KubernetesController.

Uses subprocess calls to kubectl for all operations. Every call is bounded:
kubectl gets ``--request-timeout`` and the subprocess itself is killed after
the same limit plus a short grace period.
"""

from __future__ import annotations

import asyncio
import json
import subprocess

from loguru import logger

from .controller import (
    CommandResult,
    DeploymentReadiness,
    KubernetesController,
    KubernetesUnavailable,
)

# Seconds allowed for kubectl to exit after its own request timeout fires
_EXIT_GRACE_SECONDS = 5.0


class KubectlController(KubernetesController):
    """Kubernetes controller using kubectl subprocess calls.

    All methods are async but internally use asyncio.to_thread()
    to run blocking subprocess calls without blocking the event loop.
    """

    def __init__(self, binary: str = "kubectl", request_timeout: float = 10.0) -> None:
        self.binary = binary
        self.request_timeout = request_timeout

    async def _run_kubectl(self, args: list[str]) -> CommandResult:
        """Run a kubectl command asynchronously.

        Args:
            args: Command arguments (without 'kubectl' prefix)

        Returns:
            CommandResult with execution results; a timeout is a failed result
        """
        cmd = [self.binary, *args, f"--request-timeout={self.request_timeout:g}s"]

        def _run() -> CommandResult:
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.request_timeout + _EXIT_GRACE_SECONDS,
                )
            except FileNotFoundError as e:
                return CommandResult(success=False, stderr=str(e), returncode=127)
            except subprocess.TimeoutExpired:
                logger.warning(f"kubectl {args[0]} timed out after {self.request_timeout:g}s")
                return CommandResult(
                    success=False,
                    stderr=f"kubectl timed out after {self.request_timeout:g}s",
                    returncode=124,
                )
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        result = await self._run_kubectl(["config", "current-context"])
        return result.stdout.strip() if result.success else "unknown"

    async def get_deployment_readiness(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[DeploymentReadiness]:
        """List deployments with their desired and ready replica counts."""
        args = ["get", "deployments", "-n", namespace, "-o", "json"]
        if label_selector:
            args.extend(["-l", label_selector])

        result = await self._run_kubectl(args)
        if not result.success:
            raise KubernetesUnavailable(
                result.stderr.strip() or f"kubectl exited with {result.returncode}"
            )

        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise KubernetesUnavailable(f"Unparseable kubectl output: {e}") from e

        deployments = []
        for item in data.get("items", []):
            spec = item.get("spec", {})
            status = item.get("status", {})
            deployments.append(
                DeploymentReadiness(
                    name=item.get("metadata", {}).get("name", ""),
                    desired=int(spec.get("replicas", 1)),
                    ready=int(status.get("readyReplicas", 0)),
                )
            )
        return deployments

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
        args = ["logs", "-n", namespace, "--prefix"]

        if label_selector:
            args.extend(["-l", label_selector])

        if container:
            args.extend(["-c", container])
        else:
            args.append("--all-containers=true")

        args.append(f"--tail={tail}")

        if previous:
            args.append("--previous")

        return await self._run_kubectl(args)

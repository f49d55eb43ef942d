"""Helpers for calling async controllers from the synchronous CLI."""

from __future__ import annotations

import asyncio
import concurrent.futures
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    Lifecycle components are synchronous; readiness checks go through the
    async controller API via this bridge.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from kagentctl.infra.k8s import KubectlController, run_sync

        controller = KubectlController()
        context = run_sync(controller.get_current_context())
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    # Already inside a loop (e.g. called from async test code): use a worker thread
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()

"""Release state probing.

Asks the release manager for the current status of a named release. The
result is always fresh: nothing here is cached, because another operator
(or a failed hook) can change a release between two invocations.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from loguru import logger

from .models import Release, ReleaseState, ReleaseStatus

if TYPE_CHECKING:
    from ..shell_commands.helm import HelmCommands

# helm status output for a release name it has never seen
_NOT_FOUND_MARKERS = ("release: not found", "release not found")

# Statuses that mean the release exists but is not healthy
_STUCK_STATUSES = frozenset(
    {
        "failed",
        "pending-install",
        "pending-upgrade",
        "pending-rollback",
        "uninstalling",
        "superseded",
        "unknown",
    }
)


def classify_helm_status(raw_status: str) -> ReleaseStatus:
    """Map a helm status string onto ReleaseStatus."""
    status = raw_status.strip().lower()
    if status == "deployed":
        return ReleaseStatus.DEPLOYED
    if status == "uninstalled":
        return ReleaseStatus.ABSENT
    if status in _STUCK_STATUSES:
        return ReleaseStatus.FAILED
    return ReleaseStatus.UNKNOWN


class ReleaseStateProbe:
    """Queries the release manager for a release's status.

    Transport errors are reported as UNKNOWN, never as ABSENT: treating an
    unreachable cluster as empty would lead to an install over an existing
    release.
    """

    def __init__(self, helm: HelmCommands) -> None:
        self.helm = helm

    def probe(self, release: Release) -> ReleaseState:
        """Probe one release.

        Args:
            release: Release to query

        Returns:
            ReleaseState with normalized status and helm's raw status
        """
        result = self.helm.status(release.name, release.namespace)

        if not result.success:
            output = f"{result.stderr}\n{result.stdout}".lower()
            if any(marker in output for marker in _NOT_FOUND_MARKERS):
                logger.debug(f"Release {release.name} not found in {release.namespace}")
                return ReleaseState(release=release, status=ReleaseStatus.ABSENT)

            logger.warning(
                f"helm status for {release.name} failed (exit {result.returncode})"
            )
            return ReleaseState(
                release=release,
                status=ReleaseStatus.UNKNOWN,
                diagnostic=result.stderr.strip() or result.stdout.strip(),
            )

        try:
            document = json.loads(result.stdout)
            raw_status = str(document.get("info", {}).get("status", ""))
            revision = document.get("version")
        except (json.JSONDecodeError, AttributeError) as e:
            return ReleaseState(
                release=release,
                status=ReleaseStatus.UNKNOWN,
                diagnostic=f"Unparseable helm status output: {e}",
            )

        status = classify_helm_status(raw_status)
        logger.debug(
            f"Release {release.name}: helm status '{raw_status}' -> {status.value}"
        )
        diagnostic = ""
        if status is ReleaseStatus.UNKNOWN:
            diagnostic = f"Unrecognized helm status '{raw_status}'"
        return ReleaseState(
            release=release,
            status=status,
            raw_status=raw_status,
            revision=_parse_revision(revision),
            diagnostic=diagnostic,
        )


def _parse_revision(value: object) -> int | None:
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None

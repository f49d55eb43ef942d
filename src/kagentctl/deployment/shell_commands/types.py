"""Data types for shell command results.

Note: CommandResult is re-exported from kagentctl.infra.k8s.controller,
its canonical location.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

# Re-export from canonical location
from kagentctl.infra.k8s.controller import CommandResult

__all__ = [
    "CommandResult",
    "REDACTED",
    "redact_command",
]

REDACTED = "***"


def redact_command(cmd: Sequence[str], secrets: Iterable[str] = ()) -> list[str]:
    """Mask secret values inside a command line for logging.

    Args:
        cmd: Command and arguments
        secrets: Secret values that must never appear in output

    Returns:
        Copy of the command with every secret occurrence replaced
    """
    masked = [s for s in secrets if s]
    redacted = []
    for arg in cmd:
        for secret in masked:
            arg = arg.replace(secret, REDACTED)
        redacted.append(arg)
    return redacted

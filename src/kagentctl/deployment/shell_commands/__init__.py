"""Shell command abstractions for Helm release operations.

This package provides a clean interface for the shell commands the lifecycle
orchestrator drives:

- runner: subprocess execution with output capture, streaming and redaction
- helm: Helm release management

Design Principles:
- Single Responsibility: Each module focuses on one tool
- Consistent Return Types: Functions return CommandResult instead of raising
- Separation of Concerns: Commands are decoupled from lifecycle decisions

Usage:
    from kagentctl.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    result = commands.helm.status("sre-kagent", "kagent")
"""

from pathlib import Path

from .helm import HelmCommands
from .runner import CommandRunner
from .types import CommandResult, redact_command


class ShellCommands:
    """Unified interface for shell command operations.

    Attributes:
        helm: Helm-related commands

    Example:
        >>> commands = ShellCommands(Path("."), helm_binary="/usr/local/bin/helm")
        >>> commands.helm.uninstall("sre-kagent", "kagent")
    """

    def __init__(self, project_root: Path, helm_binary: str = "helm") -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            helm_binary: Helm executable name or path
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)

        self.helm = HelmCommands(self._runner, binary=helm_binary)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmCommands",
    "CommandRunner",
    "redact_command",
]

"""Error taxonomy for the release lifecycle.

Every fatal condition is a DeploymentError carrying a human-readable cause
and, in ``details``, the exact recovery command to run next. Prerequisite
and probe errors are raised before any mutation is attempted.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class UnknownEnvironment(DeploymentError):
    """Raised when an environment name is outside the supported set."""

    def __init__(self, name: str, supported: Iterable[str]):
        self.name = name
        choices = ", ".join(supported)
        super().__init__(
            f"Unknown environment: '{name}'",
            details=(
                f"Supported environments: {choices}\n\n"
                "Recovery steps:\n"
                "  Re-run with one of the supported names, e.g.\n"
                "  kagentctl install --env development"
            ),
        )


class MissingValuesFile(DeploymentError):
    """Raised when an environment's values override file does not exist."""

    def __init__(self, environment: str, values_file: Path):
        self.environment = environment
        self.values_file = values_file
        super().__init__(
            f"Values file for '{environment}' not found",
            details=(
                f"Expected values override at: {values_file}\n\n"
                "Recovery steps:\n"
                "  1. Check if the file was accidentally deleted\n"
                f"  2. Restore from git: git checkout -- {values_file}\n"
                "  3. Or point the environment at another file in kagentctl.yaml"
            ),
        )


class MissingCredential(DeploymentError):
    """Raised when a required provider credential variable is unset."""

    def __init__(self, environment: str, variables: Iterable[str]):
        self.environment = environment
        self.variables = tuple(variables)
        names = "\n".join(f"  • {v}" for v in self.variables)
        super().__init__(
            f"Missing credentials for '{environment}'",
            details=(
                f"The following environment variables must be set:\n{names}\n\n"
                "Recovery steps:\n"
                "  1. Export the variables or add them to .env\n"
                "  2. Re-run the same command"
            ),
        )


class DefinitionsLayerMissing(DeploymentError):
    """Raised when the application layer would run without its definitions."""

    def __init__(self, release_name: str, namespace: str, environment: str):
        self.release_name = release_name
        super().__init__(
            f"Definitions release '{release_name}' is not deployed",
            details=(
                "The application layer cannot be installed or upgraded while "
                "its custom resource definitions are missing.\n\n"
                "Recovery steps:\n"
                "  Re-run without --skip-definitions:\n"
                f"  kagentctl install --env {environment} --namespace {namespace}"
            ),
        )


class ProbeUnavailable(DeploymentError):
    """Raised when the release manager cannot report a release's status."""

    def __init__(self, release_name: str, namespace: str, diagnostic: str = ""):
        self.release_name = release_name
        self.namespace = namespace
        self.diagnostic = diagnostic
        super().__init__(
            f"Cannot determine status of release '{release_name}'",
            details=(
                f"{diagnostic.strip() or 'No output from helm status'}\n\n"
                "No changes were made.\n\n"
                "Recovery steps:\n"
                "  1. Check cluster access: kubectl cluster-info\n"
                f"  2. Check the release: helm status {release_name} -n {namespace}\n"
                "  3. Re-run the same command"
            ),
        )


class OperationFailed(DeploymentError):
    """Raised when the release manager reports an error for an operation."""

    def __init__(self, message: str, diagnostic: str = "", recovery: str = ""):
        self.diagnostic = diagnostic
        details = diagnostic.strip()
        if recovery:
            details = f"{details}\n\nRecovery steps:\n  {recovery}".strip()
        super().__init__(message, details=details or None)


class ConfirmationDenied(DeploymentError):
    """Raised when the operator declines a destructive confirmation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Confirmation declined: {action}")


class CaptureUnavailable(DeploymentError):
    """Raised when a pre-destructive backup cannot be captured.

    Non-fatal: the orchestrator logs it and continues.
    """

    def __init__(self, release_name: str, reason: str):
        self.release_name = release_name
        self.reason = reason
        super().__init__(
            f"Backup of release '{release_name}' unavailable",
            details=reason,
        )

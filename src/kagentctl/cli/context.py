"""CLI context and dependency container."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import click
import typer

from kagentctl.cli.shared.console import CLIConsole, console
from kagentctl.config import OrchestratorSettings, find_settings_file, load_settings
from kagentctl.deployment.constants import DeploymentConstants, DeploymentPaths
from kagentctl.deployment.errors import ConfirmationDenied, DeploymentError
from kagentctl.deployment.lifecycle import (
    CREDENTIAL_RULES,
    BackupRecorder,
    Challenge,
    ConfirmationHandler,
    ConfirmationRequest,
    CredentialInjector,
    EnvironmentResolver,
    Layer,
    LayerProfile,
    LifecycleOrchestrator,
    OperationExecutor,
    ReleaseStateProbe,
    SafetyGate,
    VerificationProbe,
)
from kagentctl.deployment.shell_commands import ShellCommands
from kagentctl.infra.k8s import get_k8s_controller
from kagentctl.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    settings: OrchestratorSettings
    commands: ShellCommands
    constants: DeploymentConstants
    paths: DeploymentPaths


def build_cli_context(settings_file: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext.

    Raises:
        DeploymentError: If the settings file cannot be read or is invalid
    """
    project_root = get_project_root()
    constants = DeploymentConstants()
    paths = DeploymentPaths(project_root)

    settings_path = settings_file or find_settings_file(project_root)
    try:
        settings = load_settings(settings_path)
    except (OSError, ValueError) as e:
        raise DeploymentError(
            f"Cannot load settings from {settings_path}",
            details=f"{e}\n\nRecovery steps:\n  Fix or remove {settings_path}",
        ) from e

    return CLIContext(
        console=console,
        project_root=project_root,
        settings=settings,
        commands=ShellCommands(project_root, helm_binary=settings.helm_binary),
        constants=constants,
        paths=paths,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()


# ---------------------------------------------------------------------------
# Orchestrator Factory
# ---------------------------------------------------------------------------


def make_confirmation_handler(
    cli_console: CLIConsole, phrase: str | None = None
) -> ConfirmationHandler:
    """Build the interactive confirmation callback.

    Args:
        cli_console: Console used for the prompt
        phrase: Exact phrase supplied up front with --confirm

    Returns:
        Callback answering ConfirmationRequests from the orchestrator
    """

    def handle(request: ConfirmationRequest) -> bool:
        if request.challenge is Challenge.EXACT_PHRASE:
            if phrase is not None:
                if phrase != request.phrase:
                    raise ConfirmationDenied(
                        f"{request.action} (--confirm did not match the required phrase)"
                    )
                return True
            return cli_console.confirm_phrase(
                request.action,
                request.phrase or "",
                details=request.details or None,
                extra_warning=request.extra_warning or None,
            )
        return cli_console.confirm_action(
            request.action,
            details=request.details or None,
            extra_warning=request.extra_warning or None,
        )

    return handle


def build_orchestrator(
    context: CLIContext,
    *,
    confirm: ConfirmationHandler | None = None,
    on_output: Callable[[str], None] | None = None,
) -> LifecycleOrchestrator:
    """Wire the lifecycle components from the CLI context.

    Args:
        context: CLI dependencies (settings, commands, paths)
        confirm: Confirmation callback for destructive operations
        on_output: Sink for streamed helm output

    Returns:
        A ready LifecycleOrchestrator
    """
    settings = context.settings
    root = context.project_root
    helm = context.commands.helm

    profiles = {
        Layer.DEFINITIONS: LayerProfile(
            chart=settings.resolve_chart(root, settings.definitions_chart),
            timeout=settings.definitions_timeout,
            uses_environment_values=False,
        ),
        Layer.APPLICATION: LayerProfile(
            chart=settings.resolve_chart(root, settings.application_chart),
            timeout=settings.application_timeout,
            uses_environment_values=True,
        ),
    }

    controller = get_k8s_controller(
        settings.k8s_backend,
        settings.kubectl_binary,
        settings.verification.request_timeout_seconds,
    )

    return LifecycleOrchestrator(
        resolver=EnvironmentResolver(settings, root),
        probe=ReleaseStateProbe(helm),
        gate=SafetyGate(),
        backup=BackupRecorder(
            helm,
            settings.resolve_path(root, settings.backup_dir),
            masked_paths=[rule.value_path for rule in CREDENTIAL_RULES.values()],
        ),
        injector=CredentialInjector(dotenv_path=context.paths.env_file),
        executor=OperationExecutor(helm, profiles, on_output=on_output),
        verifier=VerificationProbe(
            controller,
            delay_seconds=settings.verification.delay_seconds,
            label_selector=settings.verification.label_selector,
        ),
        confirm=confirm or make_confirmation_handler(context.console),
        console=context.console,
        expected_min_ready=settings.verification.expected_min_ready,
        definitions_suffix=settings.definitions_suffix,
    )

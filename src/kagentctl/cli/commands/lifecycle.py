"""Release lifecycle commands.

This module provides the install, upgrade and uninstall commands, which
drive both release layers through the LifecycleOrchestrator.
"""

from collections.abc import Callable
from typing import Annotated

import typer
from rich.markup import escape

from kagentctl.cli.context import (
    CLIContext,
    build_orchestrator,
    get_cli_context,
    make_confirmation_handler,
)
from kagentctl.cli.shared import render_run_summary, with_error_handling
from kagentctl.deployment.lifecycle import RunSummary

# ---------------------------------------------------------------------------
# Shared Options
# ---------------------------------------------------------------------------

EnvOption = Annotated[
    str,
    typer.Option(
        "--env",
        "-e",
        help="Target environment: development, staging or production",
    ),
]
NamespaceOption = Annotated[
    str | None,
    typer.Option(
        "--namespace",
        "-n",
        help="Kubernetes namespace (default from kagentctl.yaml)",
    ),
]
ReleaseNameOption = Annotated[
    str | None,
    typer.Option(
        "--release-name",
        "-r",
        help="Base release name; the definitions release appends '-crds'",
    ),
]
DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Preview the operations without changing the cluster",
    ),
]
WaitOption = Annotated[
    bool,
    typer.Option(
        "--wait",
        help="Wait until resources are ready before reporting success",
    ),
]
SkipDefinitionsOption = Annotated[
    bool,
    typer.Option(
        "--skip-definitions",
        help="Leave the definitions (CRD) layer untouched",
    ),
]


def resolve_target(
    context: CLIContext, namespace: str | None, release_name: str | None
) -> tuple[str, str]:
    return (
        namespace or context.settings.default_namespace,
        release_name or context.settings.release_name,
    )


def _output_sink(context: CLIContext) -> Callable[[str], None]:
    def emit(line: str) -> None:
        context.console.print(f"[dim]{escape(line)}[/dim]")

    return emit


def _finish(context: CLIContext, summary: RunSummary) -> None:
    render_run_summary(summary, context.console)
    if summary.exit_code:
        raise typer.Exit(summary.exit_code)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@with_error_handling
def install(
    ctx: typer.Context,
    env: EnvOption,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    dry_run: DryRunOption = False,
    wait: WaitOption = False,
    skip_definitions: SkipDefinitionsOption = False,
) -> None:
    """Install the definitions layer, then the application layer.

    Layers that are already deployed are skipped, so re-running an
    install is safe.

    Examples:
        kagentctl install --env development
        kagentctl install --env staging --wait
        kagentctl install --env production --dry-run
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    context.console.print_header(f"Installing {release_name} ({env})")

    orchestrator = build_orchestrator(context, on_output=_output_sink(context))
    summary = orchestrator.install(
        env,
        release_name,
        namespace,
        dry_run=dry_run,
        wait=wait,
        skip_definitions=skip_definitions,
    )
    _finish(context, summary)


@with_error_handling
def upgrade(
    ctx: typer.Context,
    env: EnvOption,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    dry_run: DryRunOption = False,
    wait: WaitOption = False,
    skip_definitions: SkipDefinitionsOption = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Force resource updates through delete and recreate",
        ),
    ] = False,
    reset_values: Annotated[
        bool,
        typer.Option(
            "--reset-values",
            help="Reset values to the chart defaults before applying overrides",
        ),
    ] = False,
) -> None:
    """Upgrade both layers, installing any layer that is absent.

    A failed application upgrade is reported with a rollback command;
    nothing is rolled back automatically.

    Examples:
        kagentctl upgrade --env staging
        kagentctl upgrade --env production --wait
        kagentctl upgrade --env development --skip-definitions --reset-values
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    context.console.print_header(f"Upgrading {release_name} ({env})")

    orchestrator = build_orchestrator(context, on_output=_output_sink(context))
    summary = orchestrator.upgrade(
        env,
        release_name,
        namespace,
        dry_run=dry_run,
        wait=wait,
        skip_definitions=skip_definitions,
        force=force,
        reset_values=reset_values,
    )
    _finish(context, summary)


@with_error_handling
def uninstall(
    ctx: typer.Context,
    env: EnvOption,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    dry_run: DryRunOption = False,
    include_definitions: Annotated[
        bool,
        typer.Option(
            "--include-definitions",
            help="Also remove the definitions (CRD) layer and every custom resource",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-y",
            help="Skip yes/no confirmations (never the production phrase)",
        ),
    ] = False,
    keep_history: Annotated[
        bool,
        typer.Option(
            "--keep-history",
            help="Keep release history so the release can be rolled back",
        ),
    ] = False,
    confirm: Annotated[
        str | None,
        typer.Option(
            "--confirm",
            help="Exact confirmation phrase, for non-interactive production runs",
        ),
    ] = None,
    no_backup: Annotated[
        bool,
        typer.Option(
            "--no-backup",
            help="Do not capture the application values before removal",
        ),
    ] = False,
) -> None:
    """Uninstall the application layer, then optionally the definitions.

    The application values are backed up before removal. Removing the
    definitions layer in production requires typing an exact phrase.

    Examples:
        kagentctl uninstall --env development -y
        kagentctl uninstall --env staging --keep-history
        kagentctl uninstall --env production --include-definitions
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    context.console.print_header(f"Uninstalling {release_name} ({env})", style="red")

    orchestrator = build_orchestrator(
        context,
        confirm=make_confirmation_handler(context.console, confirm),
        on_output=_output_sink(context),
    )
    summary = orchestrator.uninstall(
        env,
        release_name,
        namespace,
        dry_run=dry_run,
        include_definitions=include_definitions,
        force=force,
        keep_history=keep_history,
        capture_backup=not no_backup,
    )
    _finish(context, summary)

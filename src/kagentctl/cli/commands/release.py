"""Release inspection and recovery commands.

This module provides status, history, rollback, chart tests and pod logs
for the two release layers. Rollback is the explicit recovery action
suggested after a failed upgrade; the lifecycle commands never roll back on
their own.
"""

from typing import Annotated

import typer
from rich.table import Table
from rich.text import Text

from kagentctl.cli.context import CLIContext, get_cli_context
from kagentctl.cli.shared import styled_status, with_error_handling
from kagentctl.deployment.errors import OperationFailed
from kagentctl.deployment.lifecycle import (
    LAYER_ORDER,
    EnvironmentResolver,
    Layer,
    ReleaseSet,
    ReleaseStateProbe,
    ReleaseStatus,
)
from kagentctl.infra.k8s import KubernetesController, get_k8s_controller, run_sync

from .lifecycle import EnvOption, NamespaceOption, ReleaseNameOption, resolve_target

LayerOption = Annotated[
    Layer,
    typer.Option(
        "--layer",
        "-l",
        help="Release layer: definitions or application",
        case_sensitive=False,
    ),
]


def _k8s_controller(context: CLIContext) -> KubernetesController:
    settings = context.settings
    return get_k8s_controller(
        settings.k8s_backend,
        settings.kubectl_binary,
        settings.verification.request_timeout_seconds,
    )


@with_error_handling
def status(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
) -> None:
    """Show the status of both release layers.

    Examples:
        kagentctl status
        kagentctl status -n kagent-staging
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    context.console.print_header("Release Status")

    controller = _k8s_controller(context)
    context.console.print(
        f"[dim]Context: {run_sync(controller.get_current_context())}  "
        f"Namespace: {namespace}[/dim]\n"
    )

    releases = ReleaseSet.from_base_name(
        release_name, namespace, suffix=context.settings.definitions_suffix
    )
    probe = ReleaseStateProbe(context.commands.helm)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Layer")
    table.add_column("Release")
    table.add_column("Status")
    table.add_column("Helm status")
    table.add_column("Revision", justify="right")

    diagnostics: list[str] = []
    with context.console.status("Querying Helm releases..."):
        states = [probe.probe(releases.for_layer(layer)) for layer in LAYER_ORDER]
    for layer, state in zip(LAYER_ORDER, states, strict=True):
        table.add_row(
            layer.value,
            state.release.name,
            styled_status(state.status),
            state.raw_status or "-",
            str(state.revision) if state.revision is not None else "-",
        )
        if state.diagnostic:
            diagnostics.append(f"{state.release.name}: {state.diagnostic}")

    context.console.print(table)
    for diagnostic in diagnostics:
        context.console.warn(diagnostic)


@with_error_handling
def history(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    layer: LayerOption = Layer.APPLICATION,
    max_revisions: Annotated[
        int,
        typer.Option(
            "--max",
            "-m",
            help="Maximum number of revisions to show",
        ),
    ] = 10,
) -> None:
    """Show the revision history of one release layer.

    Examples:
        kagentctl history
        kagentctl history --layer definitions --max 5
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    release = ReleaseSet.from_base_name(
        release_name, namespace, suffix=context.settings.definitions_suffix
    ).for_layer(layer)
    context.console.print_header(f"Release History: {release.name}")

    history_data = context.commands.helm.history(
        release.name, namespace, max_revisions
    )

    if not history_data:
        context.console.warn(
            f"No release history found for '{release.name}' in namespace '{namespace}'"
        )
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Revision", justify="right")
    table.add_column("Updated")
    table.add_column("Status")
    table.add_column("Chart")
    table.add_column("Description")

    for entry in history_data:
        status_str = str(entry.get("status", ""))
        if status_str == "deployed":
            status_display = f"[green]{status_str}[/green]"
        elif status_str == "failed" or status_str.startswith("pending"):
            status_display = f"[red]{status_str}[/red]"
        else:
            status_display = status_str

        table.add_row(
            str(entry.get("revision", "")),
            str(entry.get("updated", ""))[:19],
            status_display,
            str(entry.get("chart", "")),
            str(entry.get("description", ""))[:40],
        )

    context.console.print(table)

    if len(history_data) > 1:
        context.console.print(
            f"\n[dim]To rollback: kagentctl rollback --env <env> --layer {layer.value} "
            "<revision>[/dim]"
        )


@with_error_handling
def rollback(
    ctx: typer.Context,
    env: Annotated[
        str,
        typer.Option(
            "--env",
            "-e",
            help="Target environment: development, staging or production",
        ),
    ],
    revision: Annotated[
        int | None,
        typer.Argument(
            help="Revision number to rollback to (default: previous revision)",
        ),
    ] = None,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    layer: LayerOption = Layer.APPLICATION,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Simulate the rollback"),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt",
        ),
    ] = False,
) -> None:
    """Rollback one release layer to a previous revision.

    Examples:
        kagentctl rollback --env staging            # Previous revision
        kagentctl rollback --env staging 3          # Specific revision
        kagentctl rollback --env production --layer definitions
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    environment = EnvironmentResolver(context.settings, context.project_root).resolve(env)
    release = ReleaseSet.from_base_name(
        release_name, namespace, suffix=context.settings.definitions_suffix
    ).for_layer(layer)
    context.console.print_header(f"Rollback {release.name} ({environment.name.value})")

    helm = context.commands.helm
    history_data = helm.history(release.name, namespace)
    if not history_data:
        raise OperationFailed(
            f"No release history found for '{release.name}' in namespace '{namespace}'",
            recovery=f"kagentctl status --namespace {namespace}",
        )

    current_revision = int(history_data[-1].get("revision", 0))
    if current_revision <= 1:
        context.console.warn("Only one revision exists. Nothing to rollback to.")
        return

    target_revision = revision if revision is not None else current_revision - 1
    if target_revision < 1 or target_revision >= current_revision:
        raise OperationFailed(
            f"Invalid revision {target_revision}",
            recovery=f"Choose a revision between 1 and {current_revision - 1}: "
            f"kagentctl history --layer {layer.value}",
        )

    if not yes and not dry_run:
        extra = (
            "This is a production environment." if environment.is_production else None
        )
        if not context.console.confirm_action(
            f"Rollback {release.name} to revision {target_revision}",
            f"Namespace: {namespace}\nCurrent revision: {current_revision}",
            extra_warning=extra,
        ):
            context.console.print("[dim]Rollback cancelled.[/dim]")
            raise typer.Exit(2)

    result = helm.rollback(
        release.name,
        namespace,
        target_revision,
        wait=True,
        timeout=context.constants.ROLLBACK_TIMEOUT,
        dry_run=dry_run,
    )

    if not result.success:
        raise OperationFailed(
            f"Rollback of {release.name} failed",
            diagnostic=result.stderr or result.stdout,
            recovery=f"helm history {release.name} -n {namespace}",
        )

    context.console.ok(f"Rolled back {release.name} to revision {target_revision}")
    context.console.print("\n[dim]Run 'kagentctl status' to verify.[/dim]")


@with_error_handling
def run_tests(
    ctx: typer.Context,
    env: EnvOption,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    layer: LayerOption = Layer.APPLICATION,
    logs: Annotated[
        bool,
        typer.Option("--logs", help="Print the logs of the test pods"),
    ] = False,
) -> None:
    """Run the chart's test hooks against a deployed release layer.

    A post-deploy smoke test; exits non-zero when any test hook fails.

    Examples:
        kagentctl test --env staging
        kagentctl test --env production --logs
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    environment = EnvironmentResolver(context.settings, context.project_root).resolve(env)
    release = ReleaseSet.from_base_name(
        release_name, namespace, suffix=context.settings.definitions_suffix
    ).for_layer(layer)
    context.console.print_header(f"Testing {release.name} ({environment.name.value})")

    state = ReleaseStateProbe(context.commands.helm).probe(release)
    if state.status is not ReleaseStatus.DEPLOYED:
        raise OperationFailed(
            f"Release '{release.name}' is not deployed "
            f"(status: {state.raw_status or state.status.value})",
            diagnostic=state.diagnostic,
            recovery=f"kagentctl status --namespace {namespace} --release-name {release_name}",
        )

    with context.console.status(f"Running helm test for {release.name}..."):
        result = context.commands.helm.test(
            release.name,
            namespace,
            timeout=context.constants.TEST_TIMEOUT,
            logs=logs,
        )

    if result.stdout.strip():
        context.console.print(Text(result.stdout.rstrip()))

    if not result.success:
        raise OperationFailed(
            f"Tests for {release.name} failed",
            diagnostic=result.stderr,
            recovery=f"kagentctl logs --namespace {namespace} --release-name {release_name}",
        )

    context.console.ok(f"All tests passed for {release.name}")


@with_error_handling
def logs(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release_name: ReleaseNameOption = None,
    tail: Annotated[
        int,
        typer.Option("--tail", "-t", min=1, help="Lines to show per container"),
    ] = 50,
    selector: Annotated[
        str | None,
        typer.Option(
            "--selector",
            help="Pod label selector (default: the release's workload selector)",
        ),
    ] = None,
    container: Annotated[
        str | None,
        typer.Option("--container", "-c", help="Only this container"),
    ] = None,
    previous: Annotated[
        bool,
        typer.Option("--previous", help="Logs of the previous container instance"),
    ] = False,
) -> None:
    """Show recent logs of the application workloads.

    Examples:
        kagentctl logs
        kagentctl logs --tail 200 -n kagent-staging
        kagentctl logs --selector app.kubernetes.io/name=kagent --previous
    """
    context = get_cli_context(ctx)
    namespace, release_name = resolve_target(context, namespace, release_name)
    label_selector = selector or context.settings.verification.selector_for(release_name)
    context.console.print_header(f"Logs: {release_name}")
    context.console.print(f"[dim]Namespace: {namespace}  Selector: {label_selector}[/dim]\n")

    result = run_sync(
        _k8s_controller(context).get_pod_logs(
            namespace,
            label_selector=label_selector,
            container=container,
            tail=tail,
            previous=previous,
        )
    )

    if not result.success:
        raise OperationFailed(
            f"Cannot read logs for '{label_selector}' in namespace '{namespace}'",
            diagnostic=result.stderr,
            recovery=f"kagentctl status --namespace {namespace}",
        )

    if not result.stdout.strip():
        context.console.warn(f"No pod logs found for '{label_selector}' in '{namespace}'")
        return

    context.console.print(Text(result.stdout.rstrip()))

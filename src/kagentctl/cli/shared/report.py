"""Rich rendering of lifecycle run summaries."""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kagentctl.deployment.lifecycle import (
    LAYER_ORDER,
    ReleaseStatus,
    ResultStatus,
    RunStatus,
    RunSummary,
)
from kagentctl.utils.console_like import ConsoleLike

_RESULT_STYLES = {
    ResultStatus.SUCCEEDED: "green",
    ResultStatus.SKIPPED_NOT_FOUND: "dim",
    ResultStatus.SKIPPED_EXISTING: "dim",
    ResultStatus.FAILED: "red",
    ResultStatus.CANCELLED: "yellow",
}

_STATUS_STYLES = {
    ReleaseStatus.DEPLOYED: "green",
    ReleaseStatus.ABSENT: "dim",
    ReleaseStatus.FAILED: "red",
    ReleaseStatus.UNKNOWN: "yellow",
}


def styled_status(status: ReleaseStatus | None) -> str:
    if status is None:
        return "-"
    style = _STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def render_run_summary(summary: RunSummary, console: ConsoleLike) -> None:
    """Print the end-of-run report.

    Args:
        summary: Summary returned by the orchestrator
        console: Console receiving the output
    """
    title = f"{summary.kind.value.capitalize()} summary ({summary.environment.value})"
    if summary.dry_run:
        title += escape(" [dry-run]")

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Layer")
    table.add_column("Release")
    table.add_column("Operation")
    table.add_column("Result")
    table.add_column("Before")
    table.add_column("After")

    for layer in LAYER_ORDER:
        release = summary.releases.for_layer(layer)
        result = summary.result_for(layer)
        if result is None:
            operation, outcome = "-", "[dim]not attempted[/dim]"
        else:
            style = _RESULT_STYLES[result.status]
            operation = result.operation.kind.value
            outcome = f"[{style}]{result.status.value}[/{style}]"
        table.add_row(
            layer.value,
            release.name,
            operation,
            outcome,
            styled_status(summary.initial_states.get(layer)),
            styled_status(summary.final_states.get(layer)),
        )

    console.print(table)

    for result in summary.results:
        if result.status is ResultStatus.FAILED and result.diagnostic:
            console.print(
                Panel(
                    escape(result.diagnostic),
                    title=f"{result.operation.release.name} error",
                    border_style="red",
                )
            )

    if summary.backup is not None:
        console.ok(f"Backup: {summary.backup.path}")
    elif summary.backup_error:
        console.print(
            Panel(
                f"[bold]No backup was captured.[/bold]\n{escape(summary.backup_error)}",
                title="Backup unavailable",
                border_style="yellow",
            )
        )

    if summary.verification is not None:
        message = f"Verification: {summary.verification.describe()}"
        if summary.degraded:
            console.warn(message)
        else:
            console.info(message)

    for warning in summary.warnings:
        console.warn(warning)

    status = summary.status
    if status is RunStatus.SUCCEEDED:
        qualifier = " (degraded)" if summary.degraded else ""
        console.ok(f"Succeeded{qualifier}: {summary.change_extent.value}")
    elif status is RunStatus.CANCELLED:
        console.warn(f"Cancelled: {summary.cancel_reason}. Nothing was changed.")
    else:
        console.error(f"Failed: {summary.change_extent.value}")
        if summary.recovery_command:
            console.print(
                Panel(
                    escape(summary.recovery_command),
                    title="Recovery",
                    border_style="yellow",
                )
            )

"""Shared console output for CLI commands.

This module provides the rich console wrapper used by every command,
including confirmation dialogs and consistent error rendering.
"""

from collections.abc import Callable

import typer
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel
from rich.status import Status
from rich.text import Text


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the CLI console."""
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def status(self, status: str) -> Status:
        return self.console.status(status)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def _print_warning_panel(
        self, action: str, details: str | None, extra_warning: str | None
    ) -> None:
        warning_lines = [f"[bold red]⚠️  {action}[/bold red]"]

        if details:
            warning_lines.append(f"\n{details}")

        if extra_warning:
            warning_lines.append(f"\n[yellow]{extra_warning}[/yellow]")

        self.console.print(
            Panel(
                "\n".join(warning_lines),
                title="Confirmation Required",
                border_style="red",
            )
        )

    def confirm_action(
        self,
        action: str,
        details: str | None = None,
        extra_warning: str | None = None,
        force: bool = False,
    ) -> bool:
        """Prompt user to confirm a potentially destructive action.

        Args:
            action: Description of the action (e.g., "Uninstall sre-kagent")
            details: Additional details about what will be affected
            extra_warning: Extra warning message (e.g., for data loss)
            force: If True, skip the confirmation prompt

        Returns:
            True if the user confirmed, False otherwise
        """
        if force:
            return True

        self._print_warning_panel(action, details, extra_warning)

        try:
            response = self.console.input(
                "\n[bold]Are you sure you want to proceed?[/bold] \\[y/N]: "
            )
            return response.strip().lower() in ("y", "yes")
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return False

    def confirm_phrase(
        self,
        action: str,
        phrase: str,
        details: str | None = None,
        extra_warning: str | None = None,
    ) -> bool:
        """Require the user to type an exact phrase.

        Args:
            action: Description of the action
            phrase: Phrase that must be typed verbatim
            details: Additional details about what will be affected
            extra_warning: Extra warning message

        Returns:
            True only if the typed text matches the phrase exactly
        """
        self._print_warning_panel(action, details, extra_warning)

        try:
            response = self.console.input(
                f"\n[bold]Type [red]{phrase}[/red] to proceed:[/bold] "
            )
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return False

        if response.strip() != phrase:
            self.console.print("[dim]Phrase did not match.[/dim]")
            return False
        return True

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"\n[bold red]{message}[/bold red]\n")
        if details:
            self.console.print(Panel(Text(details), title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def print_header(self, title: str, style: str = "blue") -> None:
        """Print a styled header panel.

        Args:
            title: Header title text
            style: Border style color
        """
        self.console.print(
            Panel.fit(
                f"[bold {style}]{title}[/bold {style}]",
                border_style=style,
            )
        )


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Catches common exceptions and formats them consistently.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """
    from functools import wraps

    from kagentctl.deployment.errors import DeploymentError

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except DeploymentError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()

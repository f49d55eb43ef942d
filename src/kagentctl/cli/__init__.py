"""Main CLI application module.

This module provides the main entry point for kagentctl. Lifecycle
commands act on both release layers at once; release commands inspect or
recover a single layer.

Commands:
- install / upgrade / uninstall: two-layer lifecycle operations
- status: status of both releases
- history / rollback: revision history and explicit recovery
- test / logs: post-deploy chart tests and workload logs
"""

import sys
from typing import Annotated

import typer
from loguru import logger

from .commands import (
    history,
    install,
    logs,
    rollback,
    run_tests,
    status,
    uninstall,
    upgrade,
)

# Create the main CLI application
app = typer.Typer(
    help="🛠️  kagentctl - SRE kagent release lifecycle tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def root(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging (helm commands, probe results)",
        ),
    ] = False,
) -> None:
    """Manage the definitions and application releases of SRE kagent."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# Register lifecycle commands
app.command("install")(install)
app.command("upgrade")(upgrade)
app.command("uninstall")(uninstall)

# Register release commands
app.command("status")(status)
app.command("history")(history)
app.command("rollback")(rollback)
app.command("test")(run_tests)
app.command("logs")(logs)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Shared CLI helpers: console output and run reports."""

from .console import CLIConsole, console, with_error_handling
from .report import render_run_summary, styled_status

__all__ = [
    "CLIConsole",
    "console",
    "with_error_handling",
    "render_run_summary",
    "styled_status",
]

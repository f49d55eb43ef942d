"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
the helm command module.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult, redact_command

# Exit code reported when the executable itself cannot be started
COMMAND_NOT_FOUND = 127


class CommandRunner:
    """Low-level command executor with consistent result handling.

    This class provides the foundation for executing shell commands with
    proper output capture, error handling, and streaming support. Secret
    values passed in ``secrets`` are masked in every log line.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self.project_root = project_root

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        secrets: Iterable[str] = (),
    ) -> CommandResult:
        """Execute a shell command and return structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            capture_output: Whether to capture stdout/stderr
            secrets: Values to mask when logging the command

        Returns:
            CommandResult with success status, output, and return code.
            A missing executable yields returncode 127 instead of raising.
        """
        secrets = tuple(secrets)
        logger.debug(f"Running: {' '.join(redact_command(cmd, secrets))}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.project_root,
                capture_output=capture_output,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            logger.warning(f"Executable not found: {cmd[0]}")
            return CommandResult(
                success=False,
                stderr=str(e),
                returncode=COMMAND_NOT_FOUND,
            )

        logger.debug(f"Exit code {result.returncode} from {cmd[0]}")
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_streaming(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        on_output: Callable[[str], None] | None = None,
        secrets: Iterable[str] = (),
    ) -> CommandResult:
        """Execute a shell command with real-time output streaming.

        This method runs a command and calls the on_output callback for each
        line of output, allowing real-time progress display.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            on_output: Callback function called with each line of output.
                      If None, output is collected but not streamed.
            secrets: Values to mask when logging the command

        Returns:
            CommandResult with success status, collected output, and return code
        """
        secrets = tuple(secrets)
        logger.debug(f"Streaming: {' '.join(redact_command(cmd, secrets))}")

        # Set environment to disable output buffering
        env = os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"

        try:
            process = subprocess.Popen(
                list(cmd),
                cwd=cwd or self.project_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,  # Merge stderr into stdout
                text=True,
                bufsize=0,  # Unbuffered
                env=env,
            )
        except FileNotFoundError as e:
            logger.warning(f"Executable not found: {cmd[0]}")
            return CommandResult(
                success=False,
                stderr=str(e),
                returncode=COMMAND_NOT_FOUND,
            )

        stdout_lines: list[str] = []

        # Read output line by line
        if process.stdout:
            for line in iter(process.stdout.readline, ""):
                line = line.rstrip("\n")
                if line:  # Only process non-empty lines
                    stdout_lines.append(line)
                    if on_output:
                        on_output(line)

        process.wait()

        return CommandResult(
            success=process.returncode == 0,
            stdout="\n".join(stdout_lines),
            stderr="",  # stderr is merged into stdout
            returncode=process.returncode or 0,
        )

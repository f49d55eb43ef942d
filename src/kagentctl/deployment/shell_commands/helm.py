"""Helm command abstractions.

This module provides commands for Helm release management,
including install, upgrade, uninstall, chart tests, status and history queries.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release management (install, upgrade, uninstall, rollback, test)
    - Status queries (status, values, history)

    The helm executable is injected rather than looked up globally so each
    environment can pin its own binary.
    """

    def __init__(self, runner: CommandRunner, binary: str = "helm") -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
            binary: Helm executable name or path
        """
        self._runner = runner
        self.binary = binary

    # =========================================================================
    # Release Management
    # =========================================================================

    def install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        set_string: Mapping[str, str] | None = None,
        timeout: str = "10m",
        wait: bool = False,
        dry_run: bool = False,
        replace: bool = False,
        create_namespace: bool = True,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Install a Helm release.

        Args:
            release_name: Name for the Helm release (e.g., "sre-kagent")
            chart: Chart directory or chart reference
            namespace: Kubernetes namespace for deployment
            value_files: Optional list of values.yaml override files
            set_string: Values passed with --set-string (masked in logs)
            timeout: Maximum time to wait for the operation
            wait: Whether to wait for resources to be ready
            dry_run: Simulate the install without touching the cluster
            replace: Re-use a name that remains in release history
            create_namespace: Whether to create namespace if it doesn't exist
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with install status
        """
        cmd = [self.binary, "install", release_name, chart, "--namespace", namespace]
        if create_namespace:
            cmd.append("--create-namespace")
        if replace:
            cmd.append("--replace")
        self._append_common(cmd, value_files, set_string, timeout, wait, dry_run)
        return self._execute(cmd, set_string, on_output)

    def upgrade(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        set_string: Mapping[str, str] | None = None,
        timeout: str = "10m",
        wait: bool = False,
        dry_run: bool = False,
        force: bool = False,
        reset_values: bool = False,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Upgrade an existing Helm release.

        Args:
            release_name: Name of the release to upgrade
            chart: Chart directory or chart reference
            namespace: Kubernetes namespace
            value_files: Optional list of values.yaml override files
            set_string: Values passed with --set-string (masked in logs)
            timeout: Maximum time to wait for the operation
            wait: Whether to wait for resources to be ready
            dry_run: Simulate the upgrade without touching the cluster
            force: Force resource updates through a replacement strategy
            reset_values: Discard previously applied values
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with upgrade status
        """
        cmd = [self.binary, "upgrade", release_name, chart, "--namespace", namespace]
        if force:
            cmd.append("--force")
        if reset_values:
            cmd.append("--reset-values")
        self._append_common(cmd, value_files, set_string, timeout, wait, dry_run)
        return self._execute(cmd, set_string, on_output)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str | None = None,
        keep_history: bool = False,
        dry_run: bool = False,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted
            timeout: Maximum time to wait for deletion
            keep_history: Preserve release history for rollback
            dry_run: Simulate the uninstall

        Returns:
            CommandResult with uninstall status
        """
        cmd = [self.binary, "uninstall", release_name, "-n", namespace]
        if wait:
            cmd.append("--wait")
        if timeout:
            cmd.extend(["--timeout", timeout])
        if keep_history:
            cmd.append("--keep-history")
        if dry_run:
            cmd.append("--dry-run")
        return self._runner.run(cmd)

    def rollback(
        self,
        release_name: str,
        namespace: str,
        revision: int | None = None,
        *,
        wait: bool = True,
        timeout: str = "5m",
        dry_run: bool = False,
    ) -> CommandResult:
        """Rollback a Helm release to a previous revision.

        Args:
            release_name: Name of the release to rollback
            namespace: Kubernetes namespace
            revision: Specific revision to rollback to (default: previous revision)
            wait: Whether to wait for rollback to complete
            timeout: Maximum time to wait for rollback
            dry_run: Simulate the rollback

        Returns:
            CommandResult with rollback status
        """
        cmd = [self.binary, "rollback", release_name, "-n", namespace]
        if revision is not None:
            cmd.append(str(revision))
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])
        if dry_run:
            cmd.append("--dry-run")
        return self._runner.run(cmd)

    def test(
        self,
        release_name: str,
        namespace: str,
        *,
        timeout: str = "5m",
        logs: bool = False,
    ) -> CommandResult:
        """Run the test hooks defined by a release's chart.

        Args:
            release_name: Name of the release to test
            namespace: Kubernetes namespace
            timeout: Maximum time to wait for the test pods
            logs: Include the test pod logs in the output

        Returns:
            CommandResult; failure means at least one test hook failed
        """
        cmd = [self.binary, "test", release_name, "-n", namespace, "--timeout", timeout]
        if logs:
            cmd.append("--logs")
        return self._runner.run(cmd)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def status(self, release_name: str, namespace: str) -> CommandResult:
        """Query the status of a release as JSON.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace

        Returns:
            CommandResult whose stdout is helm's JSON status document
        """
        cmd = [self.binary, "status", release_name, "-n", namespace, "-o", "json"]
        return self._runner.run(cmd)

    def get_values(
        self,
        release_name: str,
        namespace: str,
        *,
        all_values: bool = True,
    ) -> CommandResult:
        """Get the values applied to a release as YAML.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace
            all_values: Include chart defaults (the resolved configuration)

        Returns:
            CommandResult whose stdout is a YAML document
        """
        cmd = [self.binary, "get", "values", release_name, "-n", namespace]
        if all_values:
            cmd.append("--all")
        cmd.extend(["-o", "yaml"])
        return self._runner.run(cmd)

    def history(
        self,
        release_name: str,
        namespace: str,
        max_revisions: int = 10,
    ) -> list[dict[str, str]]:
        """Get release history.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace
            max_revisions: Maximum number of revisions to return

        Returns:
            List of revision dictionaries with keys: revision, updated, status, description
        """
        cmd = [
            self.binary,
            "history",
            release_name,
            "-n",
            namespace,
            "-o",
            "json",
            "--max",
            str(max_revisions),
        ]

        result = self._runner.run(cmd)
        if not result.success or not result.stdout:
            return []

        try:
            history_data: list[dict[str, str]] = json.loads(result.stdout)
            return history_data
        except json.JSONDecodeError:
            return []

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _append_common(
        cmd: list[str],
        value_files: list[Path] | None,
        set_string: Mapping[str, str] | None,
        timeout: str,
        wait: bool,
        dry_run: bool,
    ) -> None:
        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        for key, value in (set_string or {}).items():
            cmd.extend(["--set-string", f"{key}={value}"])
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])
        if dry_run:
            cmd.append("--dry-run")

    def _execute(
        self,
        cmd: list[str],
        set_string: Mapping[str, str] | None,
        on_output: Callable[[str], None] | None,
    ) -> CommandResult:
        secrets = list((set_string or {}).values())
        # Use streaming if callback provided, otherwise capture output
        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output, secrets=secrets)
        return self._runner.run(cmd, secrets=secrets)

"""CLI command modules.

- lifecycle: install, upgrade, uninstall across both release layers
- release: status, history, rollback, test and logs for a single layer
"""

from .lifecycle import install, uninstall, upgrade
from .release import history, logs, rollback, run_tests, status

__all__ = [
    "install",
    "upgrade",
    "uninstall",
    "status",
    "history",
    "rollback",
    "run_tests",
    "logs",
]

from pathlib import Path


def get_project_root() -> Path:
    """Get the project root directory.

    Walks up from the current working directory to find the project root,
    identified by the presence of kagentctl.yaml or pyproject.toml. Charts,
    values files and backups are all resolved relative to it.

    Returns:
        Path to the project root directory
    """
    current = Path.cwd().resolve()

    # Walk up the directory tree looking for a project marker
    for parent in [current, *current.parents]:
        if (parent / "kagentctl.yaml").exists():
            return parent
        if (parent / "pyproject.toml").exists():
            return parent

    return current

"""Environment resolution.

Maps an environment name to its configuration bundle. The supported set is
closed; per-environment data comes from a single lookup table in the
settings rather than from branches on the name.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import MissingValuesFile, UnknownEnvironment
from .models import Environment, EnvironmentName

if TYPE_CHECKING:
    from kagentctl.config.settings import OrchestratorSettings


class EnvironmentResolver:
    """Resolves environment names into immutable Environment values."""

    def __init__(self, settings: OrchestratorSettings, project_root: Path) -> None:
        self.settings = settings
        self.project_root = project_root

    def resolve(self, name: str | EnvironmentName) -> Environment:
        """Resolve an environment by name.

        Args:
            name: Environment name (development, staging, production)

        Returns:
            The resolved Environment

        Raises:
            UnknownEnvironment: If the name is not in the supported set
            MissingValuesFile: If the values override file does not exist
        """
        try:
            env_name = EnvironmentName(name)
        except ValueError:
            raise UnknownEnvironment(
                str(name), [e.value for e in EnvironmentName]
            ) from None

        profile = self.settings.environments.get(env_name)
        if profile is None:
            raise UnknownEnvironment(
                env_name.value, [e.value for e in self.settings.environments]
            )

        values_file = self.settings.resolve_path(self.project_root, profile.values_file)
        if not values_file.is_file():
            raise MissingValuesFile(env_name.value, values_file)

        environment = Environment(
            name=env_name,
            tier=profile.tier,
            values_file=values_file,
            credential_providers=tuple(profile.credential_providers),
            require_credentials=profile.require_credentials,
        )
        logger.debug(
            f"Resolved environment {env_name.value} "
            f"(tier={environment.tier.value}, values={values_file})"
        )
        return environment

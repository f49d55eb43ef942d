"""Credential injection.

Resolves provider API keys for the active environment into helm
``--set-string`` parameters. Secret material lives only in memory: it is
held as pydantic ``SecretStr``, never logged, and never written to disk.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from pydantic import SecretStr

from ..errors import MissingCredential
from .models import Environment


@dataclass(frozen=True)
class CredentialRule:
    """How one provider's key reaches the chart."""

    env_var: str
    value_path: str


# One credential variable per supported upstream model provider.
CREDENTIAL_RULES: dict[str, CredentialRule] = {
    "openai": CredentialRule("OPENAI_API_KEY", "providers.openAI.apiKey"),
    "anthropic": CredentialRule("ANTHROPIC_API_KEY", "providers.anthropic.apiKey"),
    "azure-openai": CredentialRule(
        "AZUREOPENAI_API_KEY", "providers.azureOpenAI.apiKey"
    ),
    "gemini": CredentialRule("GOOGLE_API_KEY", "providers.gemini.apiKey"),
}


@dataclass
class InjectedCredentials:
    """Resolved credentials for one run."""

    values: dict[str, SecretStr] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    def as_set_values(self) -> dict[str, str]:
        """Plain values for the helm invocation. Do not log the result."""
        return {path: secret.get_secret_value() for path, secret in self.values.items()}

    def __bool__(self) -> bool:
        return bool(self.values)


class CredentialInjector:
    """Reads provider credentials from the process environment.

    A ``.env`` file at the project root is loaded first (without overriding
    variables that are already set).
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        dotenv_path: Path | None = None,
    ) -> None:
        if dotenv_path is not None and dotenv_path.exists():
            load_dotenv(dotenv_path, override=False)
        self._environ = environ if environ is not None else os.environ

    def inject(
        self, environment: Environment, *, dry_run: bool = False
    ) -> InjectedCredentials:
        """Resolve credentials for an environment.

        Args:
            environment: Active environment
            dry_run: Downgrade missing required credentials to a warning

        Returns:
            InjectedCredentials keyed by chart value path

        Raises:
            MissingCredential: If a required variable is unset on a real run
        """
        credentials = InjectedCredentials()

        for provider in environment.credential_providers:
            rule = CREDENTIAL_RULES.get(provider)
            if rule is None:
                logger.warning(f"No credential rule for provider '{provider}'")
                continue

            value = self._environ.get(rule.env_var, "")
            if value:
                credentials.values[rule.value_path] = SecretStr(value)
                logger.debug(f"Injecting {rule.env_var} as {rule.value_path}")
            else:
                credentials.missing.append(rule.env_var)

        if credentials.missing:
            if environment.require_credentials and not dry_run:
                raise MissingCredential(environment.name.value, credentials.missing)
            logger.warning(
                f"Credential variables not set: {', '.join(credentials.missing)}"
            )

        return credentials

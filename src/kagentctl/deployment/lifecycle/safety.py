"""Safety gating for destructive operations.

The gate only classifies. Resolving a confirmation is the caller's job: it
hands a ConfirmationRequest to whatever interaction channel it owns (a
terminal prompt, a CI flag, a test stub).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .models import Environment, Operation, OperationKind, ReleaseStatus, Tier


class GateVerdict(Enum):
    """Outcome of SafetyGate.authorize."""

    ALLOWED = "allowed"
    REQUIRES_CONFIRMATION = "requires-confirmation"
    DENIED = "denied"


class Challenge(Enum):
    """Kind of confirmation the operator must give."""

    YES_NO = "yes-no"
    EXACT_PHRASE = "exact-phrase"


@dataclass(frozen=True)
class GateDecision:
    """Classification of an operation by the gate."""

    verdict: GateVerdict
    challenge: Challenge | None = None
    phrase: str | None = None
    reason: str = ""


@dataclass(frozen=True)
class ConfirmationRequest:
    """What the caller must confirm, and how."""

    action: str
    challenge: Challenge
    details: str = ""
    extra_warning: str = ""
    phrase: str | None = None


# Callback owned by the caller; returns True when the operator confirmed.
ConfirmationHandler = Callable[[ConfirmationRequest], bool]


@dataclass(frozen=True)
class _Rule:
    challenge: Challenge | None
    bypassable: bool


# (tier, kind, destroys definitions) -> rule. Install/upgrade never prompt.
_DECISION_TABLE: dict[tuple[Tier, OperationKind, bool], _Rule] = {
    (Tier.PRODUCTION, OperationKind.UNINSTALL, True): _Rule(
        Challenge.EXACT_PHRASE, bypassable=False
    ),
    (Tier.PRODUCTION, OperationKind.UNINSTALL, False): _Rule(
        Challenge.YES_NO, bypassable=True
    ),
    (Tier.NON_PRODUCTION, OperationKind.UNINSTALL, True): _Rule(
        Challenge.YES_NO, bypassable=True
    ),
    (Tier.NON_PRODUCTION, OperationKind.UNINSTALL, False): _Rule(
        Challenge.YES_NO, bypassable=True
    ),
}


def confirmation_phrase(release_name: str, environment: Environment) -> str:
    """Phrase the operator must type to remove definitions in production."""
    return f"delete {release_name} in {environment.name.value}"


class SafetyGate:
    """Decides whether an operation may proceed without confirmation."""

    def authorize(
        self,
        operation: Operation,
        environment: Environment,
        target_status: ReleaseStatus,
        *,
        destroys_definitions: bool = False,
    ) -> GateDecision:
        """Classify an operation.

        Args:
            operation: Operation about to be dispatched
            environment: Active environment
            target_status: Current status of the operation's target
            destroys_definitions: Whether the run also removes the definitions layer

        Returns:
            GateDecision; ``force`` downgrades every confirmation except the
            production exact-phrase challenge
        """
        if not operation.kind.is_destructive:
            return GateDecision(GateVerdict.ALLOWED)

        if target_status is ReleaseStatus.UNKNOWN:
            return GateDecision(
                GateVerdict.DENIED,
                reason="target status is unknown; refusing to destroy",
            )

        rule = _DECISION_TABLE.get(
            (environment.tier, operation.kind, destroys_definitions)
        )
        if rule is None or rule.challenge is None:
            return GateDecision(GateVerdict.ALLOWED)

        if operation.force and rule.bypassable:
            return GateDecision(GateVerdict.ALLOWED, reason="confirmation bypassed by --force")

        phrase = None
        if rule.challenge is Challenge.EXACT_PHRASE:
            phrase = confirmation_phrase(operation.release.name, environment)

        return GateDecision(
            GateVerdict.REQUIRES_CONFIRMATION,
            challenge=rule.challenge,
            phrase=phrase,
        )

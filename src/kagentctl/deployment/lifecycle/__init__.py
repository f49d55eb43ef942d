"""Release lifecycle for the two-layer kagent release set.

Components, leaves first:

- environment: EnvironmentResolver
- probe: ReleaseStateProbe
- credentials: CredentialInjector
- safety: SafetyGate
- backup: BackupRecorder
- executor: OperationExecutor
- verification: VerificationProbe
- orchestrator: LifecycleOrchestrator, composing all of the above
"""

from .backup import BackupRecorder
from .credentials import CREDENTIAL_RULES, CredentialInjector, InjectedCredentials
from .environment import EnvironmentResolver
from .executor import LayerProfile, OperationExecutor
from .models import (
    LAYER_ORDER,
    BackupArtifact,
    Environment,
    EnvironmentName,
    ExecutionPlan,
    Layer,
    LayerStep,
    Operation,
    OperationKind,
    OperationResult,
    Release,
    ReleaseSet,
    ReleaseState,
    ReleaseStatus,
    ResultStatus,
    Tier,
)
from .orchestrator import (
    LifecycleOrchestrator,
    plan_install,
    plan_uninstall,
    plan_upgrade,
)
from .probe import ReleaseStateProbe
from .safety import (
    Challenge,
    ConfirmationHandler,
    ConfirmationRequest,
    GateDecision,
    GateVerdict,
    SafetyGate,
)
from .summary import ChangeExtent, RunStatus, RunSummary
from .verification import VerificationOutcome, VerificationProbe, VerificationState

__all__ = [
    # Components
    "BackupRecorder",
    "CredentialInjector",
    "EnvironmentResolver",
    "LifecycleOrchestrator",
    "OperationExecutor",
    "ReleaseStateProbe",
    "SafetyGate",
    "VerificationProbe",
    # Planning
    "plan_install",
    "plan_upgrade",
    "plan_uninstall",
    # Data classes
    "BackupArtifact",
    "ChangeExtent",
    "Challenge",
    "ConfirmationHandler",
    "ConfirmationRequest",
    "CREDENTIAL_RULES",
    "Environment",
    "EnvironmentName",
    "ExecutionPlan",
    "GateDecision",
    "GateVerdict",
    "InjectedCredentials",
    "LAYER_ORDER",
    "Layer",
    "LayerProfile",
    "LayerStep",
    "Operation",
    "OperationKind",
    "OperationResult",
    "Release",
    "ReleaseSet",
    "ReleaseState",
    "ReleaseStatus",
    "ResultStatus",
    "RunStatus",
    "RunSummary",
    "Tier",
    "VerificationOutcome",
    "VerificationState",
]

"""
Data models for capacity hunter.

Exports:
- Enums: AttemptOutcome, ProbeTier, Urgency, OrchestratorState, MonitorPhase
- Domain: PlacementTarget, ResourceSpec, AttemptRecord, ProbeResult, QuotaInfo
- Provisioner: PlanResult, ApplyResult, DestroyResult
"""

from capacity_hunter.models.domain import (
    TF_VARIABLE_NAMES,
    AttemptRecord,
    PlacementTarget,
    ProbeResult,
    QuotaInfo,
    ResourceSpec,
)
from capacity_hunter.models.enums import (
    AttemptOutcome,
    MonitorPhase,
    OrchestratorState,
    ProbeTier,
    Urgency,
)
from capacity_hunter.models.provisioner_models import (
    ApplyResult,
    DestroyResult,
    PlanResult,
)

__all__ = [
    # Enums
    "AttemptOutcome",
    "MonitorPhase",
    "OrchestratorState",
    "ProbeTier",
    "Urgency",
    # Domain
    "TF_VARIABLE_NAMES",
    "AttemptRecord",
    "PlacementTarget",
    "ProbeResult",
    "QuotaInfo",
    "ResourceSpec",
    # Provisioner
    "ApplyResult",
    "DestroyResult",
    "PlanResult",
]

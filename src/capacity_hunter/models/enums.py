"""
Enumerations for capacity hunter data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class AttemptOutcome(str, Enum):
    """
    Classified result of one provisioning attempt.

    Only SUCCESS is terminal for the orchestrator. QUOTA_EXCEEDED removes
    the placement target from rotation; the rest are retried next round.
    """

    SUCCESS = "success"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNEXPECTED_ERROR = "unexpected_error"


class Urgency(str, Enum):
    """Notification urgency, ordered from normal to critical."""

    NORMAL = "normal"
    URGENT = "urgent"
    CRITICAL = "critical"


class ProbeTier(str, Enum):
    """
    Capacity verification tier.

    Ordered by cost and confidence: quick (quota only), robust (quota +
    Terraform plan), ultimate (quota + plan + real apply/destroy).
    """

    QUICK = "quick"
    ROBUST = "robust"
    ULTIMATE = "ultimate"

    @property
    def urgency(self) -> Urgency:
        """Higher confidence tiers alert more loudly."""
        return {
            ProbeTier.QUICK: Urgency.NORMAL,
            ProbeTier.ROBUST: Urgency.URGENT,
            ProbeTier.ULTIMATE: Urgency.CRITICAL,
        }[self]

    @property
    def description(self) -> str:
        return {
            ProbeTier.QUICK: "Fast quota check (may have false positives)",
            ProbeTier.ROBUST: "Plan-based validation (good balance)",
            ProbeTier.ULTIMATE: "Real apply tests (most accurate, slower)",
        }[self]


class OrchestratorState(str, Enum):
    """States of the RetryOrchestrator loop."""

    IDLE = "idle"
    CHECKING_PREREQS = "checking_prereqs"
    ATTEMPTING_TARGET = "attempting_target"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    TERMINATED = "terminated"


class MonitorPhase(str, Enum):
    """States of the CapacityMonitor loop."""

    IDLE = "idle"
    CHECKING = "checking"
    DETECTED = "detected"
    NOT_DETECTED = "not_detected"
    AWAITING_DECISION = "awaiting_decision"
    DEPLOYING = "deploying"
    SLEEPING = "sleeping"
    EXITING = "exiting"

"""
Core domain models: what we ask for, where, and what happened.

PlacementTarget and ResourceSpec are built once from Settings at startup
and never change during a run. AttemptRecord and ProbeResult are produced
per attempt/check and are immutable once created.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from capacity_hunter.exceptions import (
    CapacityExhausted,
    CapacityHunterError,
    QuotaExceeded,
    UnexpectedProviderError,
)
from capacity_hunter.models.enums import AttemptOutcome, ProbeTier

# Terraform variable names expected by the provisioning templates
TF_VARIABLE_NAMES = (
    "availability_domain",
    "instance_shape",
    "subnet_id",
    "instance_name",
    "compartment_id",
    "ssh_public_key",
    "ocpus",
    "memory_gb",
)


OUTCOME_ERRORS: Dict[AttemptOutcome, type[CapacityHunterError]] = {
    AttemptOutcome.CAPACITY_EXHAUSTED: CapacityExhausted,
    AttemptOutcome.QUOTA_EXCEEDED: QuotaExceeded,
    AttemptOutcome.UNEXPECTED_ERROR: UnexpectedProviderError,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlacementTarget(BaseModel):
    """
    One candidate availability domain to provision in.

    Targets are iterated in `ordinal` order every round.
    """
    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1, description="Availability domain name, e.g. 'mUFn:CA-TORONTO-1-AD-1'")
    ordinal: int = Field(..., ge=0, description="Position in the configured candidate list")

    @property
    def suffix(self) -> str:
        """Short label used in instance names (third '-' separated field)."""
        parts = self.domain.split("-")
        if len(parts) >= 3 and parts[2]:
            return parts[2]
        return str(self.ordinal + 1)

    def __str__(self) -> str:
        return self.domain


class ResourceSpec(BaseModel):
    """
    Exact shape of the instance being requested.

    Holds identifiers only; the SSH key material itself is resolved per
    attempt so a missing key surfaces as a configuration error at the
    moment it is needed.
    """
    model_config = ConfigDict(frozen=True)

    shape: str = Field(default="VM.Standard.A1.Flex", description="OCI instance shape")
    ocpus: int = Field(default=4, ge=1, description="Requested OCPU count")
    memory_gb: int = Field(default=24, ge=1, description="Requested memory in GB")
    compartment_id: str = Field(..., min_length=1, description="Compartment OCID")
    subnet_id: str = Field(..., min_length=1, description="Subnet OCID")
    ssh_public_key_path: str = Field(default="~/.ssh/id_rsa.pub", description="Path to operator SSH public key")

    def to_variables(
        self,
        target: PlacementTarget,
        instance_name: str,
        ssh_public_key: str,
    ) -> Dict[str, str]:
        """Render Terraform variables for one attempt."""
        return {
            "availability_domain": target.domain,
            "instance_shape": self.shape,
            "subnet_id": self.subnet_id,
            "instance_name": instance_name,
            "compartment_id": self.compartment_id,
            "ssh_public_key": ssh_public_key,
            "ocpus": str(self.ocpus),
            "memory_gb": str(self.memory_gb),
        }


class AttemptRecord(BaseModel):
    """
    Result of one ProvisionAttempt.

    Logged and discarded on failure; on success it becomes part of the
    OrchestrationResult.
    """
    model_config = ConfigDict(frozen=True)

    outcome: AttemptOutcome = Field(..., description="Classified attempt outcome")
    target: PlacementTarget = Field(..., description="Placement target used")
    timestamp: datetime = Field(default_factory=utcnow, description="When the attempt finished")
    diagnostic: str = Field(default="", description="Raw provisioner output for this attempt")
    instance_name: str = Field(..., description="Instance name used for the attempt")
    dry_run: bool = Field(default=False, description="True if only a plan was run")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Provisioner outputs (success only)")

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS

    def as_error(self) -> Optional[CapacityHunterError]:
        """Exception describing a failed outcome; None on success."""
        error_cls = OUTCOME_ERRORS.get(self.outcome)
        if error_cls is None:
            return None
        return error_cls(
            f"{self.outcome.value} in {self.target.domain}",
            {
                "availability_domain": self.target.domain,
                "instance_name": self.instance_name,
                "diagnostic": self.diagnostic[-500:],
            },
        )


class ProbeResult(BaseModel):
    """Verdict of a single capacity probe."""
    model_config = ConfigDict(frozen=True)

    tier: ProbeTier
    target: PlacementTarget
    available: bool
    detail: str = ""
    checked_at: datetime = Field(default_factory=utcnow)
    cleanup_failed: bool = Field(
        default=False,
        description="Ultimate tier only: test instance destroy failed, manual cleanup needed",
    )


class QuotaInfo(BaseModel):
    """Service limit availability as reported by the CloudAPI."""
    model_config = ConfigDict(frozen=True)

    available: int = Field(..., ge=0)
    used: int = Field(default=0, ge=0)

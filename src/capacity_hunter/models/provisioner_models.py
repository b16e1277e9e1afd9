"""
Provisioner result models.

These models are internal to the provisioning layer and carry raw
Terraform results back to ProvisionAttempt and the probes. Classification
of the raw output into outcomes happens in provisioning.classifier.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanResult(BaseModel):
    """Result of `terraform plan`."""
    model_config = ConfigDict(frozen=True)

    success: bool
    raw_output: str = ""
    plan_artifact: Optional[Path] = Field(
        default=None,
        description="Saved plan file (None when planning without -out)",
    )


class ApplyResult(BaseModel):
    """Result of `terraform apply`."""
    model_config = ConfigDict(frozen=True)

    success: bool
    exit_code: int
    raw_output: str = ""
    outputs: Dict[str, Any] = Field(default_factory=dict)


class DestroyResult(BaseModel):
    """Result of `terraform destroy`."""
    model_config = ConfigDict(frozen=True)

    success: bool
    raw_output: str = ""

"""
Provisioning: Terraform-backed instance creation.

Exports:
- BaseProvisioner / TerraformProvisioner: Infrastructure engine
- ProvisionAttempt: One plan/apply/classify/cleanup cycle
- classify_failure: Single classification table for provider output
- scratch_workspace: Isolated template copy for probes
- ProvisionerError, ProvisionerTimeout
"""

from capacity_hunter.provisioning.attempt import ProvisionAttempt
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.classifier import (
    CLASSIFICATION_TABLE,
    classify_failure,
    mentions_capacity_exhaustion,
)
from capacity_hunter.provisioning.credentials import PLACEHOLDER_SSH_KEY, load_ssh_public_key
from capacity_hunter.provisioning.exceptions import ProvisionerError, ProvisionerTimeout
from capacity_hunter.provisioning.terraform import TerraformProvisioner
from capacity_hunter.provisioning.workspace import remove_artifacts, scratch_workspace

__all__ = [
    "BaseProvisioner",
    "TerraformProvisioner",
    "ProvisionAttempt",
    "CLASSIFICATION_TABLE",
    "classify_failure",
    "mentions_capacity_exhaustion",
    "PLACEHOLDER_SSH_KEY",
    "load_ssh_public_key",
    "ProvisionerError",
    "ProvisionerTimeout",
    "remove_artifacts",
    "scratch_workspace",
]

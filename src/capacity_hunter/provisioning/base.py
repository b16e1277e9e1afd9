"""
Abstract base provisioner.

Defines the interface that ProvisionAttempt and the probe tiers need from
the infrastructure engine. Provisioners are stateless with respect to
workspaces: every call names the workspace directory it operates on, so
one provisioner instance can serve the deployment workspace and any
number of isolated scratch workspaces.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.models.provisioner_models import ApplyResult, DestroyResult, PlanResult


class BaseProvisioner(ABC):
    """
    Abstract base class for infrastructure provisioners.

    Responsibilities:
    - Initialize a workspace (providers, modules)
    - Plan and apply the instance described by the variables
    - Destroy whatever a workspace created
    - Report outputs of a successful apply

    Does NOT handle:
    - Classifying failures (that's provisioning.classifier's job)
    - Retry decisions (that's RetryOrchestrator's job)
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provisioning engine is installed."""
        pass

    @abstractmethod
    def is_initialized(self, workspace: Path) -> bool:
        """Return True if `workspace` has already been initialized."""
        pass

    @abstractmethod
    async def init(
        self,
        workspace: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Initialize the workspace.

        Raises:
            ProvisionerError: Initialization failed
            ProvisionerTimeout: Exceeded timeout
            OperationCancelled: Token tripped
        """
        pass

    @abstractmethod
    async def plan(
        self,
        workspace: Path,
        variables: Mapping[str, str],
        plan_file: Optional[str] = "tfplan",
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> PlanResult:
        """
        Produce an execution plan.

        Args:
            workspace: Initialized workspace directory
            variables: Template variables (see TF_VARIABLE_NAMES)
            plan_file: Name of the saved plan artifact, None to skip saving
            timeout: Seconds before the run is interrupted
            token: Cancellation token

        Returns:
            PlanResult; success=False when the engine reported an error

        Raises:
            ProvisionerError, ProvisionerTimeout, OperationCancelled
        """
        pass

    @abstractmethod
    async def apply(
        self,
        workspace: Path,
        plan_artifact: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> ApplyResult:
        """
        Apply a saved plan.

        Returns:
            ApplyResult with exit code, raw output and (on success) outputs

        Raises:
            ProvisionerError, ProvisionerTimeout, OperationCancelled
        """
        pass

    @abstractmethod
    async def destroy(
        self,
        workspace: Path,
        variables: Mapping[str, str],
        timeout: Optional[float] = None,
    ) -> DestroyResult:
        """
        Destroy everything the workspace created.

        Deliberately takes no cancellation token: destroy is the cleanup
        path that must still run after cancellation.

        Raises:
            ProvisionerError, ProvisionerTimeout
        """
        pass

    @abstractmethod
    async def output(self, workspace: Path) -> Dict[str, Any]:
        """Return workspace outputs as {name: value}."""
        pass

"""
Abstract base client for the cloud control plane.

Defines the interface the probes, orchestrator and discovery command need
from the provider API. This abstraction keeps the hunting logic free of SDK
details and lets tests substitute a mock.
"""

from abc import ABC, abstractmethod

import structlog

from capacity_hunter.models.domain import QuotaInfo

logger = structlog.get_logger(__name__)


class BaseCloudAPI(ABC):
    """
    Abstract base class for control-plane clients.

    Responsibilities:
    - Verify credentials are usable
    - Report service-limit availability for a shape family
    - List availability domains, compartments and shapes

    Does NOT handle:
    - Creating or destroying instances (that's the Provisioner's job)
    - Deciding whether to retry (that's the RetryOrchestrator's job)
    """

    @abstractmethod
    async def is_authenticated(self) -> bool:
        """
        Check that the configured credentials work.

        Returns:
            True if an authenticated call succeeds, False otherwise

        Note:
            This should NOT raise exceptions - return False on error.
        """
        pass

    @abstractmethod
    async def get_quota(
        self,
        service: str,
        limit_name: str,
        compartment_id: str,
        domain: str,
    ) -> QuotaInfo:
        """
        Get current availability for a service limit in one domain.

        Args:
            service: Limits service name (e.g., "compute")
            limit_name: Limit name (e.g., "standard-a1-core-count")
            compartment_id: Compartment OCID
            domain: Availability domain name

        Returns:
            QuotaInfo with available and used units

        Raises:
            CloudAPIError: Query failed
        """
        pass

    @abstractmethod
    async def list_availability_domains(self, compartment_id: str) -> list[str]:
        """List availability domain names visible to the compartment."""
        pass

    @abstractmethod
    async def list_compartments(self) -> list[str]:
        """List compartment OCIDs in the tenancy."""
        pass

    @abstractmethod
    async def list_shapes(self, compartment_id: str, contains: str = "") -> list[str]:
        """List shape names, optionally filtered by substring."""
        pass

    async def close(self) -> None:
        """
        Release client resources.

        Default implementation does nothing.
        """
        logger.debug("Closing cloud client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

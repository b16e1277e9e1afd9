"""
OCI SDK implementation of the cloud control-plane client.

The SDK is synchronous, so every call is pushed to a worker thread with
asyncio.to_thread to keep the event loop (and cancellation) responsive.
SDK clients are created lazily on first use so constructing the client
never touches ~/.oci/config.
"""

import asyncio
import os
from typing import Any, Callable, Optional, TypeVar

import oci
import structlog

from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.cloud.exceptions import CloudAPIError, CloudAuthenticationError
from capacity_hunter.models.domain import QuotaInfo

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class OCICloudAPI(BaseCloudAPI):
    """
    Control-plane client backed by the `oci` Python SDK.

    Uses IdentityClient for auth/listing, LimitsClient for quota and
    ComputeClient for shape discovery.
    """

    def __init__(self, config_file: str = "~/.oci/config", profile: str = "DEFAULT"):
        self.config_file = os.path.expanduser(config_file)
        self.profile = profile
        self._config: Optional[dict[str, Any]] = None
        self._identity: Optional[oci.identity.IdentityClient] = None
        self._limits: Optional[oci.limits.LimitsClient] = None
        self._compute: Optional[oci.core.ComputeClient] = None

        logger.debug("Initialized OCI client", config_file=self.config_file, profile=profile)

    def _load_config(self) -> dict[str, Any]:
        if self._config is None:
            try:
                config = oci.config.from_file(
                    file_location=self.config_file,
                    profile_name=self.profile,
                )
                oci.config.validate_config(config)
            except (oci.exceptions.ConfigFileNotFound, oci.exceptions.InvalidConfig) as e:
                raise CloudAuthenticationError(
                    f"OCI CLI not configured: {e}",
                    {"config_file": self.config_file, "profile": self.profile},
                ) from e
            self._config = config
        return self._config

    @property
    def tenancy_id(self) -> str:
        return self._load_config()["tenancy"]

    def _identity_client(self) -> oci.identity.IdentityClient:
        if self._identity is None:
            self._identity = oci.identity.IdentityClient(self._load_config())
        return self._identity

    def _limits_client(self) -> oci.limits.LimitsClient:
        if self._limits is None:
            self._limits = oci.limits.LimitsClient(self._load_config())
        return self._limits

    def _compute_client(self) -> oci.core.ComputeClient:
        if self._compute is None:
            self._compute = oci.core.ComputeClient(self._load_config())
        return self._compute

    async def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a blocking SDK call in a thread, translating SDK errors."""
        try:
            return await asyncio.to_thread(fn)
        except oci.exceptions.ServiceError as e:
            error_cls = CloudAuthenticationError if e.status == 401 else CloudAPIError
            raise error_cls(
                f"OCI {operation} failed: {e.status} {e.code}",
                {"operation": operation, "status": e.status, "code": e.code, "message": e.message},
            ) from e
        except oci.exceptions.RequestException as e:
            raise CloudAPIError(
                f"OCI {operation} request failed: {e}",
                {"operation": operation},
            ) from e

    async def is_authenticated(self) -> bool:
        try:
            await self._call("list_regions", lambda: self._identity_client().list_regions())
        except CloudAPIError as e:
            logger.warning("OCI authentication check failed", error=e.message)
            return False
        return True

    async def get_quota(
        self,
        service: str,
        limit_name: str,
        compartment_id: str,
        domain: str,
    ) -> QuotaInfo:
        response = await self._call(
            "get_resource_availability",
            lambda: self._limits_client().get_resource_availability(
                service_name=service,
                limit_name=limit_name,
                compartment_id=compartment_id,
                availability_domain=domain,
            ),
        )
        data = response.data
        quota = QuotaInfo(available=data.available or 0, used=data.used or 0)
        logger.debug(
            "Quota fetched",
            service=service,
            limit_name=limit_name,
            domain=domain,
            available=quota.available,
            used=quota.used,
        )
        return quota

    async def list_availability_domains(self, compartment_id: str) -> list[str]:
        response = await self._call(
            "list_availability_domains",
            lambda: self._identity_client().list_availability_domains(compartment_id),
        )
        return [ad.name for ad in response.data]

    async def list_compartments(self) -> list[str]:
        response = await self._call(
            "list_compartments",
            lambda: oci.pagination.list_call_get_all_results(
                self._identity_client().list_compartments,
                self.tenancy_id,
                compartment_id_in_subtree=True,
            ),
        )
        return [self.tenancy_id] + [c.id for c in response.data]

    async def list_shapes(self, compartment_id: str, contains: str = "") -> list[str]:
        response = await self._call(
            "list_shapes",
            lambda: oci.pagination.list_call_get_all_results(
                self._compute_client().list_shapes,
                compartment_id,
            ),
        )
        shapes = sorted({s.shape for s in response.data})
        return [s for s in shapes if contains in s]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(config_file={self.config_file}, profile={self.profile})"

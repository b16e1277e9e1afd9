"""
Cloud control-plane clients.

Exports:
- BaseCloudAPI: Abstract interface used by probes and the orchestrator
- OCICloudAPI: OCI SDK implementation
- CloudAPIError, CloudAuthenticationError
"""

from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.cloud.exceptions import CloudAPIError, CloudAuthenticationError
from capacity_hunter.cloud.oci_client import OCICloudAPI

__all__ = [
    "BaseCloudAPI",
    "OCICloudAPI",
    "CloudAPIError",
    "CloudAuthenticationError",
]

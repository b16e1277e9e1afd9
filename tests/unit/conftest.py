"""Unit test fixtures (mocks and stubs).

Provides mock collaborators for testing without OCI, Terraform or a desktop.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.models.domain import QuotaInfo
from capacity_hunter.models.provisioner_models import ApplyResult, DestroyResult, PlanResult
from capacity_hunter.notifications.base import BaseNotifier
from capacity_hunter.provisioning.base import BaseProvisioner

PLAN_OK_OUTPUT = "Plan: 1 to add, 0 to change, 0 to destroy."


@pytest.fixture
def mock_cloud_api():
    """Mock CloudAPI: authenticated, 4 of 4 A1 cores free."""
    mock = MagicMock(spec=BaseCloudAPI)
    mock.is_authenticated = AsyncMock(return_value=True)
    mock.get_quota = AsyncMock(return_value=QuotaInfo(available=4, used=0))
    mock.list_availability_domains = AsyncMock(return_value=["mUFn:CA-TORONTO-1-AD-1"])
    mock.list_compartments = AsyncMock(return_value=["ocid1.tenancy.oc1..test"])
    mock.list_shapes = AsyncMock(return_value=["VM.Standard.A1.Flex"])
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_provisioner():
    """Mock provisioner whose plan, apply and destroy all succeed."""
    mock = MagicMock(spec=BaseProvisioner)
    mock.is_available = MagicMock(return_value=True)
    mock.is_initialized = MagicMock(return_value=False)
    mock.init = AsyncMock(return_value=None)

    async def _plan(workspace, variables, plan_file="tfplan", timeout=None, token=None):
        return PlanResult(
            success=True,
            raw_output=PLAN_OK_OUTPUT,
            plan_artifact=Path(workspace) / plan_file if plan_file else None,
        )

    mock.plan = AsyncMock(side_effect=_plan)
    mock.apply = AsyncMock(
        return_value=ApplyResult(
            success=True,
            exit_code=0,
            raw_output="Apply complete! Resources: 1 added, 0 changed, 0 destroyed.",
            outputs={"public_ip": "203.0.113.10"},
        )
    )
    mock.destroy = AsyncMock(return_value=DestroyResult(success=True, raw_output="Destroy complete!"))
    mock.output = AsyncMock(return_value={})
    return mock


@pytest.fixture
def mock_notifier():
    """Mock notifier recording notify() calls."""
    mock = MagicMock(spec=BaseNotifier)
    mock.notify = AsyncMock(return_value=None)
    mock.close = AsyncMock()
    return mock

"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from pathlib import Path

import pytest

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.config import Settings
from capacity_hunter.models.domain import PlacementTarget, ResourceSpec

TEST_DOMAINS = ["mUFn:CA-TORONTO-1-AD-1", "mUFn:CA-TORONTO-1-AD-2"]


@pytest.fixture
def ssh_key_file(tmp_path: Path) -> Path:
    """Operator SSH public key on disk."""
    path = tmp_path / "id_rsa.pub"
    path.write_text("ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQDtest operator@host\n")
    return path


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Terraform templates directory with a minimal main.tf."""
    path = tmp_path / "terraform"
    path.mkdir()
    (path / "main.tf").write_text('resource "null_resource" "probe" {}\n')
    (path / "variables.tf").write_text('variable "instance_name" {}\n')
    return path


@pytest.fixture
def test_settings(tmp_path: Path, ssh_key_file: Path, templates_dir: Path) -> Settings:
    """Test settings with safe defaults for local testing.

    .env loading is disabled and every path points into tmp_path. Settings
    are frozen; derive variants with `test_settings.model_copy(update=...)`.
    """
    return Settings(
        _env_file=None,
        # === Application ===
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        LOGS_DIR=tmp_path / "logs",
        # === OCI ===
        OCI_COMPARTMENT_ID="ocid1.compartment.oc1..test",
        OCI_SUBNET_ID="ocid1.subnet.oc1.ca-toronto-1.test",
        OCI_AVAILABILITY_DOMAIN=None,
        OCI_AVAILABILITY_DOMAINS=TEST_DOMAINS,
        # === Instance ===
        SSH_PUBLIC_KEY_PATH=str(ssh_key_file),
        # === Terraform ===
        TERRAFORM_DIR=templates_dir,
        # === Retry & Monitoring ===
        MIN_RETRY_DELAY=20,
        MAX_RETRY_DELAY=60,
        CHECK_INTERVAL=240,
        CONFIRM_TIMEOUT=30,
        # === Notifications / Metrics ===
        ENABLE_NOTIFICATIONS=False,
        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def targets(test_settings: Settings) -> list[PlacementTarget]:
    return test_settings.placement_targets()


@pytest.fixture
def resource_spec(test_settings: Settings) -> ResourceSpec:
    return test_settings.resource_spec()


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()

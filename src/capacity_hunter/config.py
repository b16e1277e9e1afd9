"""
Configuration settings for capacity hunter.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see env.example).

Settings are immutable once loaded: the CLI builds one instance at startup
and passes it into every component constructor.
"""

from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from capacity_hunter.exceptions import ConfigurationError
from capacity_hunter.models.domain import PlacementTarget, ResourceSpec
from capacity_hunter.models.enums import ProbeTier


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # === Application ===
    APP_NAME: str = "capacity-hunter"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    LOGS_DIR: Path = Path("logs")
    LOG_RETENTION_DAYS: int = 7

    # === OCI ===
    OCI_CONFIG_FILE: str = "~/.oci/config"
    OCI_PROFILE: str = "DEFAULT"
    OCI_COMPARTMENT_ID: Optional[str] = None
    OCI_SUBNET_ID: Optional[str] = None
    OCI_AVAILABILITY_DOMAIN: Optional[str] = None  # Single AD override
    OCI_AVAILABILITY_DOMAINS: list[str] = ["mUFn:CA-TORONTO-1-AD-1"]
    OCI_REGION_LABEL: str = "CA-TORONTO-1"  # Display only

    # === Target Instance ===
    INSTANCE_SHAPE: str = "VM.Standard.A1.Flex"  # Always Free: 4 OCPUs, 24GB RAM
    INSTANCE_OCPUS: int = 4
    INSTANCE_MEMORY_GB: int = 24
    INSTANCE_NAME_PREFIX: str = "a1-flex-instance"
    SSH_PUBLIC_KEY_PATH: str = "~/.ssh/id_rsa.pub"
    QUOTA_SERVICE_NAME: str = "compute"
    QUOTA_LIMIT_NAME: str = "standard-a1-core-count"

    # === Terraform ===
    TERRAFORM_BINARY: str = "terraform"
    TERRAFORM_DIR: Path = Path("terraform")  # Templates + deployment workspace
    INIT_TIMEOUT: int = 120  # seconds
    PLAN_TIMEOUT: int = 30  # robust probe
    APPLY_TIMEOUT: int = 45  # ultimate probe
    DEPLOY_PLAN_TIMEOUT: int = 300  # real deployment and preview
    DEPLOY_APPLY_TIMEOUT: int = 1800  # real deployment
    DESTROY_TIMEOUT: int = 600

    # === Retry & Monitoring Loop ===
    MIN_RETRY_DELAY: int = 20  # seconds
    MAX_RETRY_DELAY: int = 60
    CHECK_INTERVAL: int = 240  # monitor cadence, not randomized
    CONFIRM_TIMEOUT: int = 30  # operator decision window
    HEARTBEAT_EVERY: int = 10  # consecutive misses between heartbeat lines
    MONITOR_MODE: ProbeTier = ProbeTier.ROBUST

    # === Notifications ===
    ENABLE_NOTIFICATIONS: bool = True
    ENABLE_SOUNDS: bool = True
    ENABLE_VOICE: bool = True
    TELEGRAM_TOKEN: Optional[str] = None
    TELEGRAM_CHAT_ID: Optional[str] = None

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = False
    METRICS_PORT: int = 9090

    @model_validator(mode="after")
    def _check_bounds(self) -> "Settings":
        if self.MIN_RETRY_DELAY < 0:
            raise ValueError("MIN_RETRY_DELAY must be >= 0")
        if self.MIN_RETRY_DELAY > self.MAX_RETRY_DELAY:
            raise ValueError(
                f"MIN_RETRY_DELAY ({self.MIN_RETRY_DELAY}) must be <= "
                f"MAX_RETRY_DELAY ({self.MAX_RETRY_DELAY})"
            )
        if self.CHECK_INTERVAL < 0:
            raise ValueError("CHECK_INTERVAL must be >= 0")
        if self.CONFIRM_TIMEOUT < 0:
            raise ValueError("CONFIRM_TIMEOUT must be >= 0")
        if self.HEARTBEAT_EVERY < 1:
            raise ValueError("HEARTBEAT_EVERY must be >= 1")
        if self.INSTANCE_OCPUS < 1 or self.INSTANCE_MEMORY_GB < 1:
            raise ValueError("INSTANCE_OCPUS and INSTANCE_MEMORY_GB must be >= 1")
        return self

    def require_identifiers(self) -> None:
        """
        Fail fast if identifiers needed for provisioning are missing.

        Raises:
            ConfigurationError: Listing every missing variable
        """
        missing = [
            name
            for name in ("OCI_COMPARTMENT_ID", "OCI_SUBNET_ID")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                {"missing": missing},
            )

    def placement_targets(self) -> list[PlacementTarget]:
        """Candidate availability domains in configured order."""
        if self.OCI_AVAILABILITY_DOMAIN:
            domains = [self.OCI_AVAILABILITY_DOMAIN]
        else:
            domains = [d for d in self.OCI_AVAILABILITY_DOMAINS if d]
        if not domains:
            raise ConfigurationError("No availability domains configured")
        return [PlacementTarget(domain=d, ordinal=i) for i, d in enumerate(domains)]

    def resource_spec(self) -> ResourceSpec:
        """Build the immutable ResourceSpec (requires identifiers)."""
        self.require_identifiers()
        return ResourceSpec(
            shape=self.INSTANCE_SHAPE,
            ocpus=self.INSTANCE_OCPUS,
            memory_gb=self.INSTANCE_MEMORY_GB,
            compartment_id=self.OCI_COMPARTMENT_ID,
            subnet_id=self.OCI_SUBNET_ID,
            ssh_public_key_path=self.SSH_PUBLIC_KEY_PATH,
        )

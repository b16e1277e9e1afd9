"""
Retry orchestrator for hunting A1.Flex capacity.

This module implements the RetryOrchestrator that drives ProvisionAttempt
across the configured placement targets until one succeeds. It is the
entry point used by the deploy command and by the monitor once the
operator confirms a deployment.

Retry Policy:
    1. Prerequisites: CloudAPI authenticated, provisioner installed
    2. Round: one attempt per eligible target, in configured order
    3. Backoff: exactly one uniform-jitter sleep after a failed round
    4. Repeat until success; no attempt cap (operator cancels externally)

Quota-exceeded targets drop out for the rest of the run. When every target
has dropped out the run stops with QuotaExceeded.

Usage:
    orchestrator = RetryOrchestrator(settings, cloud_api, provisioner, attempt, backoff, targets, token)
    result = await orchestrator.run()
"""

import time
from typing import Optional, Sequence

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.config import Settings
from capacity_hunter.exceptions import ConfigurationError, QuotaExceeded
from capacity_hunter.models.domain import PlacementTarget
from capacity_hunter.models.enums import OrchestratorState
from capacity_hunter.monitoring.metrics import backoff_delay_seconds, retry_rounds_total
from capacity_hunter.provisioning.attempt import ProvisionAttempt
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.retry.backoff import BackoffPolicy
from capacity_hunter.retry.metadata import OrchestrationResult

logger = structlog.get_logger(__name__)


class RetryOrchestrator:
    """
    Unbounded retry loop over placement targets.

    At most one ProvisionAttempt is in flight at any time. Success is
    terminal: no further attempt starts once a success record is returned.

    Attributes:
        settings: Application settings
        cloud_api: Control-plane client (prerequisite check)
        provisioner: Infrastructure engine (prerequisite check)
        attempt: Per-run ProvisionAttempt
        backoff: Delay policy between rounds
        targets: Placement targets in iteration order
        token: Cancellation token
        state: Current OrchestratorState
    """

    def __init__(
        self,
        settings: Settings,
        cloud_api: BaseCloudAPI,
        provisioner: BaseProvisioner,
        attempt: ProvisionAttempt,
        backoff: BackoffPolicy,
        targets: Sequence[PlacementTarget],
        token: CancellationToken,
    ):
        if not targets:
            raise ConfigurationError("At least one placement target is required")

        self.settings = settings
        self.cloud_api = cloud_api
        self.provisioner = provisioner
        self.attempt = attempt
        self.backoff = backoff
        self.targets = sorted(targets, key=lambda t: t.ordinal)
        self.token = token
        self.state = OrchestratorState.IDLE
        self.rounds = 0
        self.total_attempts = 0

    async def check_prerequisites(self) -> None:
        """
        Verify the provisioning toolchain before the first attempt.

        Raises:
            ConfigurationError: Provisioner missing or CloudAPI not authenticated
        """
        self.state = OrchestratorState.CHECKING_PREREQS
        logger.info("Checking prerequisites")

        if not self.provisioner.is_available():
            raise ConfigurationError(
                "Terraform not installed",
                {"binary": self.settings.TERRAFORM_BINARY},
            )

        if not await self.cloud_api.is_authenticated():
            raise ConfigurationError(
                "OCI CLI not configured or not authenticated",
                {"config_file": self.settings.OCI_CONFIG_FILE, "profile": self.settings.OCI_PROFILE},
            )

        logger.info("Prerequisites check passed")

    async def run(self) -> OrchestrationResult:
        """
        Hunt until one attempt succeeds.

        Returns:
            OrchestrationResult wrapping the successful AttemptRecord

        Raises:
            ConfigurationError: Prerequisites failed or SSH key unavailable
            QuotaExceeded: Every placement target reported quota exhaustion
            OperationCancelled: Operator cancelled (cleanup already done)
        """
        try:
            await self.check_prerequisites()
            return await self._hunt()
        finally:
            if self.state is not OrchestratorState.SUCCEEDED:
                self.state = OrchestratorState.TERMINATED

    async def _hunt(self) -> OrchestrationResult:
        start = time.monotonic()
        blocked: set[PlacementTarget] = set()
        last_quota_error: Optional[QuotaExceeded] = None

        logger.info(
            "Starting A1.Flex deployment retry loop",
            targets=[t.domain for t in self.targets],
            min_delay=self.backoff.min_delay,
            max_delay=self.backoff.max_delay,
        )

        while True:
            eligible = [t for t in self.targets if t not in blocked]
            if not eligible:
                raise QuotaExceeded(
                    "Service limit exceeded in every availability domain",
                    {"targets": [t.domain for t in self.targets], "attempts": self.total_attempts},
                ) from last_quota_error

            self.rounds += 1
            logger.info(
                f"Round #{self.rounds}",
                elapsed_seconds=int(time.monotonic() - start),
                eligible_targets=len(eligible),
            )

            for target in eligible:
                self.token.raise_if_cancelled()
                self.state = OrchestratorState.ATTEMPTING_TARGET
                self.total_attempts += 1

                record = await self.attempt.run(target)

                if record.succeeded:
                    self.state = OrchestratorState.SUCCEEDED
                    elapsed = time.monotonic() - start
                    logger.info(
                        "SUCCESS! A1.Flex instance deployed",
                        availability_domain=target.domain,
                        instance_name=record.instance_name,
                        dry_run=record.dry_run,
                        rounds=self.rounds,
                        total_attempts=self.total_attempts,
                        elapsed_seconds=int(elapsed),
                    )
                    return OrchestrationResult(
                        record=record,
                        rounds=self.rounds,
                        total_attempts=self.total_attempts,
                        elapsed_seconds=elapsed,
                    )

                error = record.as_error()
                if isinstance(error, QuotaExceeded):
                    blocked.add(target)
                    last_quota_error = error
                    logger.error(
                        "Excluding availability domain for the rest of the run",
                        availability_domain=target.domain,
                        reason=record.outcome.value,
                    )
                else:
                    logger.info(
                        "Attempt failed, moving on",
                        availability_domain=target.domain,
                        reason=record.outcome.value,
                        error_type=type(error).__name__,
                    )

            if len(blocked) == len(self.targets):
                continue

            await self._backoff()

    async def _backoff(self) -> None:
        self.state = OrchestratorState.BACKOFF
        delay = self.backoff.next_delay()
        retry_rounds_total.inc()
        backoff_delay_seconds.observe(delay)
        logger.info(f"Waiting {delay} seconds before next attempt", delay_seconds=delay)
        await self.token.sleep(delay)


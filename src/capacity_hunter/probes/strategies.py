"""
Capacity probe strategies.

This module implements the Strategy Pattern for capacity verification.
Each tier trades cost for confidence, and each higher tier re-runs the
tier below it as a precondition instead of trusting an earlier result,
because capacity changes between checks.

Probe Tier Chain:
    1. QuickProbe: Service-limit availability (one API call, may false-positive)
    2. RobustProbe: Quick + Terraform plan in a scratch workspace
    3. UltimateProbe: Robust + real apply of a disposable instance, then destroy
"""

import os
import time
from typing import Protocol

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.cloud.exceptions import CloudAPIError
from capacity_hunter.config import Settings
from capacity_hunter.models.domain import PlacementTarget, ProbeResult, ResourceSpec
from capacity_hunter.models.enums import ProbeTier
from capacity_hunter.monitoring.metrics import cleanup_failures_total, probe_checks_total
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.classifier import mentions_capacity_exhaustion
from capacity_hunter.provisioning.credentials import PLACEHOLDER_SSH_KEY
from capacity_hunter.provisioning.exceptions import ProvisionerError, ProvisionerTimeout
from capacity_hunter.provisioning.workspace import scratch_workspace

logger = structlog.get_logger(__name__)


class ProbeStrategy(Protocol):
    """
    Protocol for capacity probes.

    Each strategy implements a single `check` method answering "does
    capacity look available in this placement target right now?".
    """

    tier: ProbeTier

    async def check(self, target: PlacementTarget, token: CancellationToken) -> ProbeResult:
        """
        Run the probe.

        Args:
            target: Availability domain to probe
            token: Cancellation token

        Returns:
            ProbeResult; failures of the probe itself count as unavailable

        Raises:
            OperationCancelled: Token tripped (scratch state already cleaned)
        """
        ...


def _verdict(
    tier: ProbeTier,
    target: PlacementTarget,
    available: bool,
    detail: str,
    cleanup_failed: bool = False,
) -> ProbeResult:
    probe_checks_total.labels(tier=tier.value, available=str(available).lower()).inc()
    return ProbeResult(
        tier=tier,
        target=target,
        available=available,
        detail=detail,
        cleanup_failed=cleanup_failed,
    )


class QuickProbe:
    """
    Quota-only check.

    Available iff the service limit has at least the requested OCPU count
    free in the target domain. Says nothing about host capacity.
    """

    tier = ProbeTier.QUICK

    def __init__(self, cloud_api: BaseCloudAPI, spec: ResourceSpec, settings: Settings):
        self.cloud_api = cloud_api
        self.spec = spec
        self.settings = settings

    async def check(self, target: PlacementTarget, token: CancellationToken) -> ProbeResult:
        token.raise_if_cancelled()
        logger.debug("Quick capacity check", availability_domain=target.domain)

        try:
            quota = await self.cloud_api.get_quota(
                self.settings.QUOTA_SERVICE_NAME,
                self.settings.QUOTA_LIMIT_NAME,
                self.spec.compartment_id,
                target.domain,
            )
        except CloudAPIError as e:
            logger.error("Failed to check quota", error=e.message, details=e.details)
            return _verdict(self.tier, target, False, f"Failed to check quota: {e.message}")

        logger.debug("Quota fetched", available=quota.available, used=quota.used)

        if quota.available < self.spec.ocpus:
            logger.warning(
                f"Insufficient quota: only {quota.available} cores available",
                requested=self.spec.ocpus,
            )
            return _verdict(
                self.tier,
                target,
                False,
                f"Insufficient quota: {quota.available} cores available, {self.spec.ocpus} requested",
            )

        return _verdict(
            self.tier,
            target,
            True,
            f"Quota available: {quota.available} cores (used {quota.used})",
        )


class RobustProbe:
    """
    Quick check plus a Terraform plan in a scratch workspace.

    A plan that succeeds but mentions capacity exhaustion still counts as
    unavailable. Plan failure or timeout counts as unavailable.
    """

    tier = ProbeTier.ROBUST

    def __init__(
        self,
        quick: QuickProbe,
        provisioner: BaseProvisioner,
        spec: ResourceSpec,
        settings: Settings,
    ):
        self.quick = quick
        self.provisioner = provisioner
        self.spec = spec
        self.settings = settings

    async def check(self, target: PlacementTarget, token: CancellationToken) -> ProbeResult:
        precondition = await self.quick.check(target, token)
        if not precondition.available:
            return _verdict(self.tier, target, False, f"Quick check failed: {precondition.detail}")

        logger.debug("Robust capacity check (plan-based)", availability_domain=target.domain)
        variables = self.spec.to_variables(
            target,
            f"plan-probe-{int(time.time())}",
            PLACEHOLDER_SSH_KEY,
        )

        try:
            async with scratch_workspace(
                self.settings.TERRAFORM_DIR,
                self.settings.LOGS_DIR,
                prefix="plan-test-",
            ) as workspace:
                await self.provisioner.init(
                    workspace,
                    timeout=self.settings.INIT_TIMEOUT,
                    token=token,
                )
                plan = await self.provisioner.plan(
                    workspace,
                    variables,
                    plan_file=None,
                    timeout=self.settings.PLAN_TIMEOUT,
                    token=token,
                )
        except ProvisionerTimeout:
            logger.debug("Plan timed out")
            return _verdict(self.tier, target, False, "Plan timed out")
        except ProvisionerError as e:
            logger.error("Plan test could not run", error=e.message)
            return _verdict(self.tier, target, False, f"Plan test could not run: {e.message}")

        if not plan.success:
            logger.debug("Plan failed")
            return _verdict(self.tier, target, False, "Plan failed")

        if mentions_capacity_exhaustion(plan.raw_output):
            logger.debug("Plan succeeded but found capacity issues")
            return _verdict(self.tier, target, False, "Plan succeeded but reports capacity issues")

        logger.debug("Plan succeeded with no capacity errors")
        return _verdict(self.tier, target, True, "Plan succeeded with no capacity errors")


class UltimateProbe:
    """
    Robust check plus a real apply of a disposable instance.

    The test instance uses a synthetic name and a placeholder SSH key and is
    destroyed right after the apply whatever the verdict, including when the
    check is cancelled mid-apply. A failed destroy is logged at critical
    level (an orphaned billable instance) but does not change the verdict.
    """

    tier = ProbeTier.ULTIMATE

    def __init__(
        self,
        robust: RobustProbe,
        provisioner: BaseProvisioner,
        spec: ResourceSpec,
        settings: Settings,
    ):
        self.robust = robust
        self.provisioner = provisioner
        self.spec = spec
        self.settings = settings

    async def check(self, target: PlacementTarget, token: CancellationToken) -> ProbeResult:
        precondition = await self.robust.check(target, token)
        if not precondition.available:
            logger.debug("Robust check failed, skipping apply test")
            return _verdict(self.tier, target, False, f"Robust check failed: {precondition.detail}")

        test_name = f"apply-probe-{int(time.time())}-{os.getpid()}"
        variables = self.spec.to_variables(target, test_name, PLACEHOLDER_SSH_KEY)
        logger.debug("Ultimate capacity check (real apply test)", test_instance=test_name)

        available = False
        detail = ""
        cleanup_failed = False
        try:
            async with scratch_workspace(
                self.settings.TERRAFORM_DIR,
                self.settings.LOGS_DIR,
                prefix="apply-test-",
            ) as workspace:
                await self.provisioner.init(
                    workspace,
                    timeout=self.settings.INIT_TIMEOUT,
                    token=token,
                )
                apply_started = False
                try:
                    plan = await self.provisioner.plan(
                        workspace,
                        variables,
                        timeout=self.settings.PLAN_TIMEOUT,
                        token=token,
                    )
                    if not plan.success or plan.plan_artifact is None:
                        detail = "Plan failed before apply test"
                    else:
                        apply_started = True
                        apply = await self.provisioner.apply(
                            workspace,
                            plan.plan_artifact,
                            timeout=self.settings.APPLY_TIMEOUT,
                            token=token,
                        )
                        if apply.success:
                            logger.info("APPLY SUCCEEDED! Real capacity confirmed", test_instance=test_name)
                            available = True
                            detail = "Apply test succeeded, capacity confirmed"
                        elif mentions_capacity_exhaustion(apply.raw_output):
                            logger.debug("Apply failed with capacity error (expected)")
                            detail = "Apply failed: out of host capacity"
                        else:
                            logger.error(
                                "Apply test failed with unexpected error",
                                test_instance=test_name,
                                output=apply.raw_output[-2000:],
                            )
                            detail = "Apply failed with unexpected error"
                finally:
                    if apply_started:
                        cleanup_failed = not await self._destroy(workspace, variables, test_name)
        except ProvisionerTimeout as e:
            detail = f"Apply test timed out: {e.message}"
        except ProvisionerError as e:
            logger.error("Apply test could not run", error=e.message)
            detail = f"Apply test could not run: {e.message}"

        return _verdict(self.tier, target, available, detail, cleanup_failed=cleanup_failed)

    async def _destroy(self, workspace, variables, test_name: str) -> bool:
        logger.debug("Destroying test instance", test_instance=test_name)
        try:
            result = await self.provisioner.destroy(
                workspace,
                variables,
                timeout=self.settings.DESTROY_TIMEOUT,
            )
            succeeded = result.success
        except ProvisionerError as e:
            logger.error("Destroy of test instance errored", error=e.message)
            succeeded = False

        if not succeeded:
            cleanup_failures_total.labels(kind="destroy").inc()
            logger.critical(
                "Manual cleanup needed for test instance, it may be billing",
                test_instance=test_name,
                availability_domain=variables.get("availability_domain"),
                compartment_id=variables.get("compartment_id"),
            )
        return succeeded


def build_probe(
    tier: ProbeTier,
    cloud_api: BaseCloudAPI,
    provisioner: BaseProvisioner,
    spec: ResourceSpec,
    settings: Settings,
) -> ProbeStrategy:
    """Build the probe chain for `tier`."""
    quick = QuickProbe(cloud_api, spec, settings)
    if tier is ProbeTier.QUICK:
        return quick
    robust = RobustProbe(quick, provisioner, spec, settings)
    if tier is ProbeTier.ROBUST:
        return robust
    return UltimateProbe(robust, provisioner, spec, settings)

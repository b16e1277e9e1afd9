"""
One end-to-end provisioning attempt against a placement target.

Sequence: resolve the SSH key, lazily initialize the deployment workspace,
plan with a timestamp-qualified instance name, apply (unless dry run),
classify the result. Every non-success exit, including provisioner errors
and cancellation, destroys whatever the apply may have created and
removes the plan artifact. The success path keeps the new instance.
"""

from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.config import Settings
from capacity_hunter.models.domain import AttemptRecord, PlacementTarget, ResourceSpec
from capacity_hunter.models.enums import AttemptOutcome, Urgency
from capacity_hunter.monitoring.metrics import cleanup_failures_total, provision_attempts_total
from capacity_hunter.notifications.base import BaseNotifier
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.classifier import classify_failure
from capacity_hunter.provisioning.credentials import load_ssh_public_key
from capacity_hunter.provisioning.exceptions import ProvisionerError
from capacity_hunter.provisioning.workspace import remove_artifacts

logger = structlog.get_logger(__name__)

PLAN_FILE = "tfplan"


def run_stamp() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def instance_name(prefix: str, run_timestamp: str, target: PlacementTarget) -> str:
    """Deterministic name: <prefix>-<run timestamp>-<target suffix>."""
    return f"{prefix}-{run_timestamp}-{target.suffix}"


class ProvisionAttempt:
    """
    Performs single provisioning attempts for one run.

    One instance is shared by all attempts of an orchestrator run: it
    remembers whether the workspace was initialized and uses the same run
    timestamp in every instance name.

    Attributes:
        settings: Application settings (timeouts, name prefix)
        spec: Requested instance shape and identifiers
        provisioner: Infrastructure engine
        notifier: Operator notification channel
        token: Cancellation token
        workspace: Deployment workspace (the Terraform templates directory)
        dry_run: Stop after a successful plan
    """

    def __init__(
        self,
        settings: Settings,
        spec: ResourceSpec,
        provisioner: BaseProvisioner,
        notifier: BaseNotifier,
        token: CancellationToken,
        workspace: Optional[Path] = None,
        dry_run: bool = False,
        run_timestamp: Optional[str] = None,
    ):
        self.settings = settings
        self.spec = spec
        self.provisioner = provisioner
        self.notifier = notifier
        self.token = token
        self.workspace = workspace or settings.TERRAFORM_DIR
        self.dry_run = dry_run
        self.run_timestamp = run_timestamp or run_stamp()
        self._initialized = False
        self._apply_started = False

    def instance_name(self, target: PlacementTarget) -> str:
        return instance_name(self.settings.INSTANCE_NAME_PREFIX, self.run_timestamp, target)

    async def run(self, target: PlacementTarget) -> AttemptRecord:
        """
        Attempt to provision the instance in `target`.

        Returns:
            AttemptRecord with the classified outcome

        Raises:
            ConfigurationError: SSH key unavailable (fatal)
            OperationCancelled: Token tripped (after cleanup)
        """
        ssh_public_key = load_ssh_public_key(self.spec.ssh_public_key_path)
        instance_name = self.instance_name(target)
        variables = self.spec.to_variables(target, instance_name, ssh_public_key)

        logger.info(
            "Attempting deployment",
            availability_domain=target.domain,
            shape=self.spec.shape,
            ocpus=self.spec.ocpus,
            memory_gb=self.spec.memory_gb,
            instance_name=instance_name,
            compartment=f"{self.spec.compartment_id[:20]}...",
            ssh_key_path=self.spec.ssh_public_key_path,
            dry_run=self.dry_run,
        )

        self._apply_started = False
        record: Optional[AttemptRecord] = None
        try:
            record = await self._execute(target, instance_name, variables)
            return record
        finally:
            if record is None or not record.succeeded or record.dry_run:
                await self._cleanup(variables)
            if record is not None:
                provision_attempts_total.labels(outcome=record.outcome.value).inc()

    async def _execute(
        self,
        target: PlacementTarget,
        instance_name: str,
        variables: Mapping[str, str],
    ) -> AttemptRecord:
        try:
            if not self._initialized:
                if not self.provisioner.is_initialized(self.workspace):
                    await self.provisioner.init(
                        self.workspace,
                        timeout=self.settings.INIT_TIMEOUT,
                        token=self.token,
                    )
                self._initialized = True

            logger.info("Planning deployment", instance_name=instance_name)
            plan = await self.provisioner.plan(
                self.workspace,
                variables,
                plan_file=PLAN_FILE,
                timeout=self.settings.DEPLOY_PLAN_TIMEOUT,
                token=self.token,
            )
            if not plan.success or plan.plan_artifact is None:
                return self._failure(target, instance_name, plan.raw_output, stage="plan")

            if self.dry_run:
                logger.info("DRY RUN: plan completed successfully, no resources created")
                await self.notifier.notify(
                    "OCI Dry Run Success",
                    "Terraform plan completed successfully!",
                    Urgency.NORMAL,
                )
                return AttemptRecord(
                    outcome=AttemptOutcome.SUCCESS,
                    target=target,
                    diagnostic=plan.raw_output,
                    instance_name=instance_name,
                    dry_run=True,
                )

            logger.info("Applying deployment", instance_name=instance_name)
            self._apply_started = True
            apply = await self.provisioner.apply(
                self.workspace,
                plan.plan_artifact,
                timeout=self.settings.DEPLOY_APPLY_TIMEOUT,
                token=self.token,
            )
        except ProvisionerError as e:
            diagnostic = f"{e.message}\n{e.details.get('output', '')}".strip()
            return self._failure(
                target,
                instance_name,
                diagnostic,
                stage="provisioner",
                outcome=AttemptOutcome.UNEXPECTED_ERROR,
            )

        if not apply.success:
            return self._failure(target, instance_name, apply.raw_output, stage="apply")

        logger.info(
            "Deployment successful",
            instance_name=instance_name,
            availability_domain=target.domain,
            outputs=apply.outputs,
        )
        await self.notifier.notify(
            "OCI Deployment Success",
            f"Instance {instance_name} created successfully!",
            Urgency.URGENT,
        )
        return AttemptRecord(
            outcome=AttemptOutcome.SUCCESS,
            target=target,
            diagnostic=apply.raw_output,
            instance_name=instance_name,
            outputs=apply.outputs,
        )

    def _failure(
        self,
        target: PlacementTarget,
        instance_name: str,
        diagnostic: str,
        stage: str,
        outcome: Optional[AttemptOutcome] = None,
    ) -> AttemptRecord:
        outcome = outcome or classify_failure(diagnostic)

        if outcome is AttemptOutcome.CAPACITY_EXHAUSTED:
            logger.warning(
                "Detected capacity issue, expected while A1.Flex is unavailable",
                availability_domain=target.domain,
                stage=stage,
            )
        elif outcome is AttemptOutcome.QUOTA_EXCEEDED:
            logger.error(
                "Service limit exceeded, you may already have A1.Flex instances. "
                "Check the OCI console for existing instances",
                availability_domain=target.domain,
                stage=stage,
            )
        else:
            logger.error(
                "Unexpected provider error",
                availability_domain=target.domain,
                stage=stage,
                diagnostic=diagnostic,
            )

        return AttemptRecord(
            outcome=outcome,
            target=target,
            diagnostic=diagnostic,
            instance_name=instance_name,
            dry_run=self.dry_run,
        )

    async def _cleanup(self, variables: Mapping[str, str]) -> None:
        logger.info("Cleaning up failed deployment attempt", workspace=str(self.workspace))
        if self._apply_started:
            try:
                result = await self.provisioner.destroy(
                    self.workspace,
                    variables,
                    timeout=self.settings.DESTROY_TIMEOUT,
                )
            except ProvisionerError as e:
                cleanup_failures_total.labels(kind="destroy").inc()
                logger.warning(
                    "Destroy after failed attempt errored, check the OCI console for leftovers",
                    instance_name=variables.get("instance_name"),
                    error=e.message,
                )
            else:
                if not result.success:
                    cleanup_failures_total.labels(kind="destroy").inc()
                    logger.warning(
                        "Destroy after failed attempt failed, check the OCI console for leftovers",
                        instance_name=variables.get("instance_name"),
                        output=result.raw_output[-2000:],
                    )
            self._apply_started = False
        remove_artifacts(self.workspace)

"""
Component wiring for the CLI entry points.

Expensive or stateful collaborators (cloud client, provisioner, notifier)
are built once per invocation and shared by the monitor and the
orchestrator it may hand off to.
"""

from typing import Optional

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.cloud.oci_client import OCICloudAPI
from capacity_hunter.config import Settings
from capacity_hunter.models.enums import ProbeTier
from capacity_hunter.monitor.capacity_monitor import CapacityMonitor
from capacity_hunter.monitor.prompt import ConsolePrompt, OperatorPrompt, StaticPrompt
from capacity_hunter.notifications import build_notifier
from capacity_hunter.notifications.base import BaseNotifier
from capacity_hunter.probes.strategies import ProbeStrategy, build_probe
from capacity_hunter.provisioning.attempt import ProvisionAttempt
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.terraform import TerraformProvisioner
from capacity_hunter.retry.backoff import BackoffPolicy
from capacity_hunter.retry.engine import RetryOrchestrator


def get_cloud_api(settings: Settings) -> BaseCloudAPI:
    return OCICloudAPI(config_file=settings.OCI_CONFIG_FILE, profile=settings.OCI_PROFILE)


def get_provisioner(settings: Settings) -> BaseProvisioner:
    return TerraformProvisioner(binary=settings.TERRAFORM_BINARY)


def get_notifier(settings: Settings) -> BaseNotifier:
    return build_notifier(settings)


def get_orchestrator(
    settings: Settings,
    token: CancellationToken,
    cloud_api: BaseCloudAPI,
    provisioner: BaseProvisioner,
    notifier: BaseNotifier,
    dry_run: bool = False,
) -> RetryOrchestrator:
    """
    Create a RetryOrchestrator for one deployment run.

    Raises:
        ConfigurationError: Required identifiers missing
    """
    attempt = ProvisionAttempt(
        settings=settings,
        spec=settings.resource_spec(),
        provisioner=provisioner,
        notifier=notifier,
        token=token,
        dry_run=dry_run,
    )
    return RetryOrchestrator(
        settings=settings,
        cloud_api=cloud_api,
        provisioner=provisioner,
        attempt=attempt,
        backoff=BackoffPolicy.from_settings(settings),
        targets=settings.placement_targets(),
        token=token,
    )


def get_probe(
    settings: Settings,
    tier: ProbeTier,
    cloud_api: BaseCloudAPI,
    provisioner: BaseProvisioner,
) -> ProbeStrategy:
    return build_probe(tier, cloud_api, provisioner, settings.resource_spec(), settings)


def get_monitor(
    settings: Settings,
    tier: ProbeTier,
    token: CancellationToken,
    cloud_api: BaseCloudAPI,
    provisioner: BaseProvisioner,
    notifier: BaseNotifier,
    interval: Optional[int] = None,
    auto_deploy: bool = False,
    prompt: Optional[OperatorPrompt] = None,
) -> CapacityMonitor:
    """
    Create a CapacityMonitor whose hand-off builds a fresh orchestrator.

    Args:
        auto_deploy: Answer "yes" to the deploy prompt without asking
        prompt: Override the confirmation prompt (tests)
    """
    if prompt is None:
        prompt = StaticPrompt(True) if auto_deploy else ConsolePrompt()

    return CapacityMonitor(
        settings=settings,
        probe=get_probe(settings, tier, cloud_api, provisioner),
        targets=settings.placement_targets(),
        notifier=notifier,
        prompt=prompt,
        token=token,
        orchestrator_factory=lambda: get_orchestrator(
            settings, token, cloud_api, provisioner, notifier
        ),
        interval=interval,
    )

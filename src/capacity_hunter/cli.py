"""
Command line entry points.

capacity-monitor: probe for A1.Flex capacity once, or keep polling and
offer to deploy when it appears.
capacity-deploy: hunt for capacity by retrying the real deployment until
it succeeds.

Both exit 0 on success (capacity confirmed / instance deployed) and 1 on
failure, unavailability, bad usage or cancellation.
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

import click
import structlog
from prometheus_client import start_http_server
from pydantic import ValidationError

from capacity_hunter import __version__, factory
from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.cloud.base_client import BaseCloudAPI
from capacity_hunter.cloud.exceptions import CloudAPIError
from capacity_hunter.config import Settings
from capacity_hunter.exceptions import CapacityHunterError, ConfigurationError, OperationCancelled
from capacity_hunter.housekeeping import (
    DEPLOY_LOG_PREFIX,
    MONITOR_LOG_PREFIX,
    clean_workspace,
    cleanup_logs,
    latest_log,
    preview_plan,
    preview_summary,
    status_report,
)
from capacity_hunter.logging_config import configure_logging, run_log_path
from capacity_hunter.models.enums import ProbeTier, Urgency
from capacity_hunter.monitor.capacity_monitor import MANUAL_DEPLOY_HINT
from capacity_hunter.provisioning.attempt import instance_name, run_stamp
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.exceptions import ProvisionerError
from capacity_hunter.retry.metadata import OrchestrationResult

logger = structlog.get_logger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
TIERS = [tier.value for tier in ProbeTier]


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e


def setup_logging(settings: Settings, prefix: Optional[str] = None) -> Optional[Path]:
    """Configure logging, attaching a per-run log file when `prefix` is given."""
    log_file = run_log_path(settings.LOGS_DIR, prefix) if prefix else None
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, log_file)
    if settings.PROMETHEUS_ENABLED:
        start_http_server(settings.METRICS_PORT)
        logger.info("Prometheus metrics exposed", port=settings.METRICS_PORT)
    return log_file


async def _with_signals(token: CancellationToken, coro: Awaitable[int]) -> int:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel, sig.name)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(sig)
    try:
        return await coro
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def run_async(main: Callable[[CancellationToken], Awaitable[int]]) -> int:
    """
    Run one hunting coroutine with signal-driven cancellation.

    Maps the errors allowed to escape the loops onto exit code 1.
    """
    async def _main() -> int:
        token = CancellationToken()
        return await _with_signals(token, main(token))

    try:
        return asyncio.run(_main())
    except OperationCancelled as e:
        logger.warning("Stopped by operator", reason=e.details.get("reason"))
        return 1
    except ConfigurationError as e:
        logger.error("Configuration error", error=e.message, details=e.details)
        click.echo(f"Error: {e.message}", err=True)
        return 1
    except CapacityHunterError as e:
        logger.error(e.message, error_type=type(e).__name__, details=e.details)
        return 1


async def check_prerequisites(
    cloud_api: BaseCloudAPI,
    provisioner: BaseProvisioner,
    tier: ProbeTier,
) -> None:
    if not await cloud_api.is_authenticated():
        raise ConfigurationError("OCI CLI not configured. Run 'oci setup config' first.")
    if tier is not ProbeTier.QUICK and not provisioner.is_available():
        raise ConfigurationError("Terraform not found (required for robust/ultimate modes)")


def report_deployment(result: OrchestrationResult) -> None:
    record = result.record
    if record.dry_run:
        click.echo("DRY RUN completed: plan succeeded, no resources were created.")
        return
    click.echo("")
    click.echo("A1.Flex instance deployed!")
    click.echo(f"  Instance:            {record.instance_name}")
    click.echo(f"  Availability domain: {record.target.domain}")
    click.echo(f"  Attempts:            {result.total_attempts} over {result.rounds} rounds")
    for name, value in record.outputs.items():
        click.echo(f"  {name}: {value}")


def parse_mode(args: Sequence[str], default_tier: ProbeTier) -> tuple[bool, ProbeTier]:
    """
    Parse `[quick|robust|ultimate|monitor [tier]]`.

    Returns:
        (continuous, tier)
    """
    if not args:
        return False, default_tier
    head, rest = args[0], list(args[1:])
    if head == "monitor":
        if len(rest) > 1:
            raise click.UsageError("monitor takes at most one tier")
        if not rest:
            return True, default_tier
        head, continuous = rest[0], True
    else:
        if rest:
            raise click.UsageError(f"Unexpected arguments: {' '.join(rest)}")
        continuous = False
    if head not in TIERS:
        raise click.UsageError(f"Unknown mode: {head} (choose from {', '.join(TIERS)}, monitor)")
    return continuous, ProbeTier(head)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("mode", nargs=-1)
@click.option("-i", "--interval", type=click.IntRange(min=0), help="Seconds between checks.")
@click.option("-s", "--status", is_flag=True, help="Show monitoring status.")
@click.option(
    "-c",
    "--cleanup",
    "cleanup_days",
    type=click.IntRange(min=0),
    is_flag=False,
    flag_value=7,
    default=None,
    help="Delete monitor logs older than N days (default: 7).",
)
@click.option("--discover", is_flag=True, help="List availability domains and A1 shapes.")
@click.option("--auto-deploy", is_flag=True, help="Deploy without asking when capacity appears.")
@click.version_option(__version__, prog_name="capacity-monitor")
@click.pass_context
def monitor_cli(
    ctx: click.Context,
    mode: tuple[str, ...],
    interval: Optional[int],
    status: bool,
    cleanup_days: Optional[int],
    discover: bool,
    auto_deploy: bool,
) -> None:
    """
    Unified A1.Flex capacity monitor.

    \b
    MODES:
      quick              Fast quota-only check
      robust             Plan-based validation (default)
      ultimate           Real apply tests (most accurate)
      monitor [mode]     Continuous monitoring
    """
    settings = load_settings()

    if status:
        setup_logging(settings)
        current_log = run_log_path(settings.LOGS_DIR, MONITOR_LOG_PREFIX)
        click.echo(status_report(settings, current_log=current_log))
        ctx.exit(0)

    if cleanup_days is not None:
        setup_logging(settings)
        cleanup_logs(settings.LOGS_DIR, cleanup_days)
        ctx.exit(0)

    if discover:
        setup_logging(settings)
        ctx.exit(run_async(lambda token: _discover(settings)))

    continuous, tier = parse_mode(mode, settings.MONITOR_MODE)
    log_file = setup_logging(settings, MONITOR_LOG_PREFIX)
    logger.info("A1.Flex Capacity Monitor starting", workspace=str(Path.cwd()), log_file=str(log_file))

    if continuous:
        ctx.exit(run_async(lambda token: _monitor(settings, tier, token, interval, auto_deploy)))
    ctx.exit(run_async(lambda token: _check(settings, tier, token)))


async def _discover(settings: Settings) -> int:
    cloud_api = factory.get_cloud_api(settings)
    try:
        compartment_id = settings.OCI_COMPARTMENT_ID or (await cloud_api.list_compartments())[0]
        domains = await cloud_api.list_availability_domains(compartment_id)
        shapes = await cloud_api.list_shapes(compartment_id, contains="A1")
    except CloudAPIError as e:
        logger.error("Discovery failed", error=e.message, details=e.details)
        return 1
    finally:
        await cloud_api.close()

    click.echo("Availability Domains:")
    for domain in domains:
        click.echo(f"  {domain}")
    click.echo("A1 shapes:")
    for shape in shapes or ["(none offered)"]:
        click.echo(f"  {shape}")
    return 0


async def _check(settings: Settings, tier: ProbeTier, token: CancellationToken) -> int:
    cloud_api = factory.get_cloud_api(settings)
    provisioner = factory.get_provisioner(settings)
    notifier = factory.get_notifier(settings)
    try:
        await check_prerequisites(cloud_api, provisioner, tier)
        monitor = factory.get_monitor(settings, tier, token, cloud_api, provisioner, notifier)
        logger.info(f"Single capacity check ({tier.value} mode)")
        result = await monitor.check_once()
        if not result.available:
            logger.info("No A1.Flex capacity available", detail=result.detail)
            return 1
        await monitor.alert(result)
        click.echo("")
        click.echo("A1.Flex capacity is available!")
        click.echo(MANUAL_DEPLOY_HINT)
        return 0
    finally:
        await notifier.close()
        await cloud_api.close()


async def _monitor(
    settings: Settings,
    tier: ProbeTier,
    token: CancellationToken,
    interval: Optional[int],
    auto_deploy: bool,
) -> int:
    cloud_api = factory.get_cloud_api(settings)
    provisioner = factory.get_provisioner(settings)
    notifier = factory.get_notifier(settings)
    try:
        await check_prerequisites(cloud_api, provisioner, tier)
        monitor = factory.get_monitor(
            settings,
            tier,
            token,
            cloud_api,
            provisioner,
            notifier,
            interval=interval,
            auto_deploy=auto_deploy,
        )
        result = await monitor.run()
        if result is not None:
            report_deployment(result)
        return 0
    finally:
        await notifier.close()
        await cloud_api.close()


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("-d", "--dry-run", is_flag=True, help="Plan only, create nothing.")
@click.option("-t", "--test", "test_notifications", is_flag=True, help="Test the notification system.")
@click.option("-p", "--preview", is_flag=True, help="Show a detailed deployment preview.")
@click.option("-l", "--logs", "show_logs", is_flag=True, help="Show the latest deployment log.")
@click.option("-c", "--clean", is_flag=True, help="Remove Terraform state and plan files.")
@click.version_option(__version__, prog_name="capacity-deploy")
@click.pass_context
def deploy_cli(
    ctx: click.Context,
    dry_run: bool,
    test_notifications: bool,
    preview: bool,
    show_logs: bool,
    clean: bool,
) -> None:
    """
    Keep retrying an A1.Flex deployment until capacity becomes available.

    Runs until an instance is created or you stop it (Ctrl+C).
    """
    settings = load_settings()

    if show_logs:
        setup_logging(settings)
        path = latest_log(settings.LOGS_DIR, DEPLOY_LOG_PREFIX)
        if path is None:
            click.echo("No log file found.")
        else:
            click.echo(path.read_text(encoding="utf-8", errors="replace"), nl=False)
        ctx.exit(0)

    if clean:
        setup_logging(settings)
        clean_workspace(settings.TERRAFORM_DIR)
        ctx.exit(0)

    if test_notifications:
        setup_logging(settings)
        ctx.exit(_test_notifications(settings))

    log_file = setup_logging(settings, DEPLOY_LOG_PREFIX)
    logger.info("A1.Flex deployment starting", log_file=str(log_file), dry_run=dry_run)

    if preview:
        ctx.exit(run_async(lambda token: _preview(settings, token)))

    if dry_run:
        logger.warning("DRY RUN MODE: No resources will be created")
    ctx.exit(run_async(lambda token: _deploy(settings, token, dry_run)))


def _test_notifications(settings: Settings) -> int:
    notifier = factory.get_notifier(settings)

    async def _send() -> None:
        try:
            await notifier.notify(
                "OCI Deployment Test",
                "Notification system is working",
                Urgency.URGENT,
            )
        finally:
            await notifier.close()

    click.echo("Sending test notification...")
    asyncio.run(_send())
    if click.confirm("Did you see/hear the notification?", default=False):
        click.echo("Notifications are working.")
        return 0
    click.echo("Check ENABLE_NOTIFICATIONS and your desktop notification settings.")
    return 1


async def _preview(settings: Settings, token: CancellationToken) -> int:
    provisioner = factory.get_provisioner(settings)
    if not provisioner.is_available():
        raise ConfigurationError("Terraform is not installed. Please install Terraform first.")

    spec = settings.resource_spec()
    target = settings.placement_targets()[0]
    name = instance_name(settings.INSTANCE_NAME_PREFIX, run_stamp(), target)

    click.echo(preview_summary(settings, spec, target, name))
    try:
        plan = await preview_plan(settings, provisioner, spec, target, name, token)
    except ProvisionerError as e:
        logger.error("Preview plan failed", error=e.message)
        return 1
    click.echo(plan.raw_output)
    return 0 if plan.success else 1


async def _deploy(settings: Settings, token: CancellationToken, dry_run: bool) -> int:
    settings.require_identifiers()
    cloud_api = factory.get_cloud_api(settings)
    provisioner = factory.get_provisioner(settings)
    notifier = factory.get_notifier(settings)
    try:
        orchestrator = factory.get_orchestrator(
            settings, token, cloud_api, provisioner, notifier, dry_run=dry_run
        )
        result = await orchestrator.run()
        report_deployment(result)
        return 0
    finally:
        await notifier.close()
        await cloud_api.close()


def _run_cli(command: click.Command, args: Optional[Sequence[str]] = None) -> int:
    """Invoke a click command, mapping usage errors to exit code 1."""
    try:
        code = command.main(args=args, standalone_mode=False)
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return 1
    except click.ClickException as e:
        e.show()
        return 1
    return code if isinstance(code, int) else 0


def monitor_main() -> None:
    sys.exit(_run_cli(monitor_cli))


def deploy_main() -> None:
    sys.exit(_run_cli(deploy_cli))

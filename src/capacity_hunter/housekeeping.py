"""
Operator housekeeping commands.

Status report, log retention, deployment workspace cleanup, latest log
display and the deployment preview. None of these touch the hunting loops.
"""

import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.config import Settings
from capacity_hunter.models.domain import PlacementTarget, ResourceSpec
from capacity_hunter.models.enums import ProbeTier
from capacity_hunter.models.provisioner_models import PlanResult
from capacity_hunter.monitoring.metrics import cleanup_failures_total
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.credentials import load_ssh_public_key
from capacity_hunter.provisioning.workspace import remove_tree

logger = structlog.get_logger(__name__)

MONITOR_LOG_PREFIX = "a1-monitor"
DEPLOY_LOG_PREFIX = "a1-deploy"
SCRATCH_PREFIXES = ("plan-test-", "apply-test-")
SCRATCH_MAX_AGE_SECONDS = 24 * 3600

# Everything `terraform init/plan/apply` leaves in the deployment workspace
WORKSPACE_STATE_PATTERNS = (".terraform*", "tfplan", "terraform.tfstate*", "terraform_apply.log")


def recent_logs(logs_dir: Path, prefix: str, limit: int = 5) -> list[Path]:
    """Most recent `<prefix>-*.log` files, oldest first."""
    if not logs_dir.is_dir():
        return []
    logs = sorted(logs_dir.glob(f"{prefix}-*.log"), key=lambda p: p.stat().st_mtime)
    return logs[-limit:]


def status_report(settings: Settings, current_log: Optional[Path] = None) -> str:
    lines = [
        "A1.Flex Capacity Monitor Status",
        "===============================",
        "",
        f"Workspace: {Path.cwd()}",
        f"Terraform dir: {settings.TERRAFORM_DIR}",
        f"Logs directory: {settings.LOGS_DIR}",
    ]
    if current_log is not None:
        lines.append(f"Current log: {current_log}")
    lines += ["", "Available monitoring modes:"]
    lines += [f"  - {tier.value:<8} {tier.description}" for tier in ProbeTier]
    lines += ["", "Recent log files:"]

    logs = recent_logs(settings.LOGS_DIR, MONITOR_LOG_PREFIX)
    if not logs:
        lines.append("  No logs found")
    for path in logs:
        stat = path.stat()
        modified = datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M")
        lines.append(f"  {modified}  {stat.st_size:>8}  {path.name}")
    return "\n".join(lines)


def cleanup_logs(logs_dir: Path, days: int, now: Optional[float] = None) -> tuple[int, int]:
    """
    Enforce log retention.

    Deletes monitor logs older than `days` days and scratch workspaces
    older than one day (left behind by a killed process).

    Returns:
        (logs removed, scratch directories removed)
    """
    if days < 0:
        raise ValueError("days must be >= 0")

    now = time.time() if now is None else now
    logger.info(f"Cleaning up logs older than {days} days", logs_dir=str(logs_dir))
    if not logs_dir.is_dir():
        return 0, 0

    removed_logs = 0
    for path in logs_dir.glob(f"{MONITOR_LOG_PREFIX}-*.log"):
        if now - path.stat().st_mtime > days * 86400:
            try:
                path.unlink()
            except OSError as e:
                cleanup_failures_total.labels(kind="artifact").inc()
                logger.warning("Failed to remove log file", path=str(path), error=str(e))
            else:
                removed_logs += 1

    removed_dirs = 0
    for prefix in SCRATCH_PREFIXES:
        for path in logs_dir.glob(f"{prefix}*"):
            if path.is_dir() and now - path.stat().st_mtime > SCRATCH_MAX_AGE_SECONDS:
                if remove_tree(path):
                    removed_dirs += 1

    logger.info("Log cleanup completed", logs_removed=removed_logs, workspaces_removed=removed_dirs)
    return removed_logs, removed_dirs


def clean_workspace(workspace: Path, patterns: Iterable[str] = WORKSPACE_STATE_PATTERNS) -> list[Path]:
    """
    Remove Terraform state and artifacts from the deployment workspace.

    Templates are left in place. Note this forgets any instance the state
    tracks; the instance itself keeps running.
    """
    logger.info("Cleaning up Terraform files", workspace=str(workspace))
    removed: list[Path] = []
    for pattern in patterns:
        for path in sorted(workspace.glob(pattern)):
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                cleanup_failures_total.labels(kind="artifact").inc()
                logger.warning("Failed to remove", path=str(path), error=str(e))
            else:
                removed.append(path)
    logger.info("Cleanup completed", removed=len(removed))
    return removed


def latest_log(logs_dir: Path, prefix: str = DEPLOY_LOG_PREFIX) -> Optional[Path]:
    logs = recent_logs(logs_dir, prefix, limit=1)
    return logs[0] if logs else None


def preview_summary(settings: Settings, spec: ResourceSpec, target: PlacementTarget, instance_name: str) -> str:
    return "\n".join(
        [
            "",
            "A1.FLEX DEPLOYMENT PREVIEW",
            "==========================",
            f"Availability Domain: {target.domain}",
            f"Instance Shape: {spec.shape} (ARM-based)",
            f"Memory: {spec.memory_gb}GB",
            f"OCPUs: {spec.ocpus}",
            f"Instance Name: {instance_name}",
            f"Region: {settings.OCI_REGION_LABEL}",
            f"SSH Key: {spec.ssh_public_key_path}",
            f"Subnet: {spec.subnet_id}",
            "Cost: FREE (Always Free Tier)",
            (
                "Retry Strategy: Infinite (until A1.Flex available), "
                f"{settings.MIN_RETRY_DELAY}-{settings.MAX_RETRY_DELAY}s between rounds"
            ),
            "",
        ]
    )


async def preview_plan(
    settings: Settings,
    provisioner: BaseProvisioner,
    spec: ResourceSpec,
    target: PlacementTarget,
    instance_name: str,
    token: CancellationToken,
) -> PlanResult:
    """
    Plan the real deployment in the deployment workspace without saving it.

    Raises:
        ConfigurationError: SSH key unavailable
        ProvisionerError, ProvisionerTimeout, OperationCancelled
    """
    workspace = settings.TERRAFORM_DIR
    if not provisioner.is_initialized(workspace):
        logger.info("Initializing Terraform for preview")
        await provisioner.init(workspace, timeout=settings.INIT_TIMEOUT, token=token)

    logger.info("Generating A1.Flex Terraform plan preview")
    variables = spec.to_variables(target, instance_name, load_ssh_public_key(spec.ssh_public_key_path))
    return await provisioner.plan(
        workspace,
        variables,
        plan_file=None,
        timeout=settings.DEPLOY_PLAN_TIMEOUT,
        token=token,
    )

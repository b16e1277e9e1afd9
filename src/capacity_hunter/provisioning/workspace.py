"""
Scratch workspaces and artifact cleanup.

Probe tiers never touch the deployment workspace: each check runs in a
fresh copy of the Terraform templates that is removed on every exit path,
including cancellation. Removal failures are logged as warnings and
counted, never silently dropped.
"""

import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable

import structlog

from capacity_hunter.monitoring.metrics import cleanup_failures_total
from capacity_hunter.provisioning.exceptions import ProvisionerError

logger = structlog.get_logger(__name__)

TEMPLATE_PATTERNS = ("*.tf", "*.tf.json", ".terraform.lock.hcl")

# Files produced by a deployment attempt that must not outlive a failure
ATTEMPT_ARTIFACTS = ("tfplan",)


def copy_templates(templates_dir: Path, destination: Path) -> list[Path]:
    """Copy Terraform templates into `destination`."""
    copied: list[Path] = []
    for pattern in TEMPLATE_PATTERNS:
        for source in sorted(templates_dir.glob(pattern)):
            if source.is_file():
                copied.append(Path(shutil.copy2(source, destination / source.name)))
    if not any(p.suffix in (".tf", ".json") for p in copied):
        raise ProvisionerError(
            "No Terraform templates found",
            {"templates_dir": str(templates_dir)},
        )
    return copied


def remove_tree(path: Path) -> bool:
    """Remove a directory tree; log loudly and return False on failure."""
    if not path.exists():
        return True
    try:
        shutil.rmtree(path)
    except OSError as e:
        cleanup_failures_total.labels(kind="workspace").inc()
        logger.warning(
            "Failed to remove scratch workspace, remove it manually",
            path=str(path),
            error=str(e),
        )
        return False
    return True


def remove_artifacts(workspace: Path, names: Iterable[str] = ATTEMPT_ARTIFACTS) -> bool:
    """Remove transient attempt artifacts from a workspace."""
    ok = True
    for name in names:
        target = workspace / name
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            ok = False
            cleanup_failures_total.labels(kind="artifact").inc()
            logger.warning("Failed to remove artifact", path=str(target), error=str(e))
    return ok


@asynccontextmanager
async def scratch_workspace(
    templates_dir: Path,
    parent: Path,
    prefix: str,
) -> AsyncIterator[Path]:
    """
    Yield an isolated copy of the templates, removed on exit.

    Args:
        templates_dir: Directory holding the Terraform templates
        parent: Where scratch directories are created (the logs directory)
        prefix: Directory name prefix, e.g. "plan-test-"
    """
    parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    logger.debug("Created scratch workspace", path=str(path))
    try:
        copy_templates(templates_dir, path)
        yield path
    finally:
        if remove_tree(path):
            logger.debug("Removed scratch workspace", path=str(path))

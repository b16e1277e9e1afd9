"""
Terraform CLI provisioner.

Runs terraform as an asyncio subprocess so that timeouts and the
cancellation token can interrupt it. Interrupted runs get SIGINT first
(Terraform releases its state lock and stops cleanly), then SIGKILL if
they do not exit within the grace period.
"""

import asyncio
import json
import os
import shutil
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.models.provisioner_models import ApplyResult, DestroyResult, PlanResult
from capacity_hunter.provisioning.base import BaseProvisioner
from capacity_hunter.provisioning.exceptions import ProvisionerError, ProvisionerTimeout

logger = structlog.get_logger(__name__)

INTERRUPT_GRACE_SECONDS = 10.0


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    output: str


def var_args(variables: Mapping[str, str]) -> list[str]:
    return [f"-var={name}={value}" for name, value in variables.items()]


class TerraformProvisioner(BaseProvisioner):
    """Provisioner driving the `terraform` binary."""

    def __init__(self, binary: str = "terraform"):
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def is_initialized(self, workspace: Path) -> bool:
        return (workspace / ".terraform").is_dir()

    async def _run(
        self,
        args: list[str],
        workspace: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> CommandResult:
        if token is not None:
            token.raise_if_cancelled()

        command = args[0]
        env = {**os.environ, "TF_IN_AUTOMATION": "1"}
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                cwd=str(workspace),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
            )
        except FileNotFoundError as e:
            raise ProvisionerError(
                f"Terraform binary not found: {self.binary}",
                {"command": command, "workspace": str(workspace)},
            ) from e

        communicate = asyncio.ensure_future(proc.communicate())
        waiters: set[asyncio.Future] = {communicate}
        cancel_wait: Optional[asyncio.Future] = None
        if token is not None:
            cancel_wait = asyncio.ensure_future(token.wait())
            waiters.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await self._interrupt(proc, communicate)
            raise
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        if communicate not in done:
            await self._interrupt(proc, communicate)
            if token is not None:
                token.raise_if_cancelled()
            raise ProvisionerTimeout(
                f"terraform {command} timed out after {timeout}s",
                {"command": command, "workspace": str(workspace), "timeout": timeout},
            )

        stdout, _ = communicate.result()
        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        logger.debug(
            "Terraform command finished",
            command=command,
            exit_code=proc.returncode,
            workspace=str(workspace),
        )
        return CommandResult(exit_code=proc.returncode, output=output)

    async def _interrupt(self, proc: asyncio.subprocess.Process, communicate: asyncio.Future) -> None:
        if proc.returncode is None:
            try:
                proc.send_signal(signal.SIGINT)
            except ProcessLookupError:
                pass
        try:
            await asyncio.wait_for(asyncio.shield(communicate), timeout=INTERRUPT_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Terraform ignored SIGINT, killing", pid=proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await communicate

    async def init(
        self,
        workspace: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        logger.info("Initializing Terraform", workspace=str(workspace))
        result = await self._run(["init", "-input=false", "-no-color"], workspace, timeout, token)
        if result.exit_code != 0:
            raise ProvisionerError(
                "Failed to initialize Terraform",
                {"workspace": str(workspace), "output": result.output[-2000:]},
            )

    async def plan(
        self,
        workspace: Path,
        variables: Mapping[str, str],
        plan_file: Optional[str] = "tfplan",
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> PlanResult:
        args = ["plan", "-input=false", "-no-color", "-refresh=true", *var_args(variables)]
        if plan_file:
            args.append(f"-out={plan_file}")
        result = await self._run(args, workspace, timeout, token)
        success = result.exit_code == 0
        return PlanResult(
            success=success,
            raw_output=result.output,
            plan_artifact=workspace / plan_file if success and plan_file else None,
        )

    async def apply(
        self,
        workspace: Path,
        plan_artifact: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> ApplyResult:
        args = ["apply", "-input=false", "-no-color", "-auto-approve", str(plan_artifact)]
        result = await self._run(args, workspace, timeout, token)
        outputs: Dict[str, Any] = {}
        if result.exit_code == 0:
            outputs = await self.output(workspace)
        return ApplyResult(
            success=result.exit_code == 0,
            exit_code=result.exit_code,
            raw_output=result.output,
            outputs=outputs,
        )

    async def destroy(
        self,
        workspace: Path,
        variables: Mapping[str, str],
        timeout: Optional[float] = None,
    ) -> DestroyResult:
        args = ["destroy", "-input=false", "-no-color", "-auto-approve", *var_args(variables)]
        result = await self._run(args, workspace, timeout)
        return DestroyResult(success=result.exit_code == 0, raw_output=result.output)

    async def output(self, workspace: Path) -> Dict[str, Any]:
        result = await self._run(["output", "-json", "-no-color"], workspace)
        if result.exit_code != 0:
            logger.warning("terraform output failed", workspace=str(workspace))
            return {}
        try:
            raw = json.loads(result.output or "{}")
        except json.JSONDecodeError:
            logger.warning("terraform output returned invalid JSON", workspace=str(workspace))
            return {}
        return {name: entry.get("value") for name, entry in raw.items()}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(binary={self.binary})"

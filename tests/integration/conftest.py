"""Integration test fixtures.

FileBackedProvisioner stands in for Terraform: it runs against real
workspace directories, writing the plan file and a state file the way
terraform would, so workspace isolation and cleanup can be observed on
disk. Scripted failures come from `apply_outputs`.
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pytest

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.models.provisioner_models import ApplyResult, DestroyResult, PlanResult
from capacity_hunter.provisioning.base import BaseProvisioner

STATE_FILE = "terraform.tfstate"


class FileBackedProvisioner(BaseProvisioner):
    """Provisioner that records resources as JSON state in the workspace."""

    def __init__(self, apply_outputs: Optional[list[Optional[str]]] = None):
        # None entries mean "apply succeeds"; strings are failure output
        self.apply_outputs = list(apply_outputs or [])
        self.workspaces_seen: list[Path] = []
        self.live_instances: dict[str, Path] = {}
        self.calls: list[str] = []

    def is_available(self) -> bool:
        return True

    def is_initialized(self, workspace: Path) -> bool:
        return (workspace / ".terraform").is_dir()

    async def init(self, workspace: Path, timeout: Optional[float] = None, token: Optional[CancellationToken] = None) -> None:
        self.calls.append("init")
        (workspace / ".terraform").mkdir(exist_ok=True)

    async def plan(
        self,
        workspace: Path,
        variables: Mapping[str, str],
        plan_file: Optional[str] = "tfplan",
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> PlanResult:
        self.calls.append("plan")
        self.workspaces_seen.append(workspace)
        artifact = None
        if plan_file:
            artifact = workspace / plan_file
            artifact.write_text(json.dumps(dict(variables)))
        return PlanResult(success=True, raw_output="Plan: 1 to add", plan_artifact=artifact)

    async def apply(
        self,
        workspace: Path,
        plan_artifact: Path,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> ApplyResult:
        self.calls.append("apply")
        variables = json.loads(plan_artifact.read_text())
        failure = self.apply_outputs.pop(0) if self.apply_outputs else None
        if failure is not None:
            return ApplyResult(success=False, exit_code=1, raw_output=failure)
        name = variables["instance_name"]
        (workspace / STATE_FILE).write_text(json.dumps({"instance": name}))
        self.live_instances[name] = workspace
        return ApplyResult(
            success=True,
            exit_code=0,
            raw_output="Apply complete! Resources: 1 added",
            outputs={"instance_name": name},
        )

    async def destroy(self, workspace: Path, variables: Mapping[str, str], timeout: Optional[float] = None) -> DestroyResult:
        self.calls.append("destroy")
        state = workspace / STATE_FILE
        if state.exists():
            name = json.loads(state.read_text())["instance"]
            self.live_instances.pop(name, None)
            state.unlink()
        return DestroyResult(success=True, raw_output="Destroy complete!")

    async def output(self, workspace: Path) -> Dict[str, Any]:
        return {}


@pytest.fixture
def file_provisioner():
    return FileBackedProvisioner()

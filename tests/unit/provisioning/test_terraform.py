"""
Unit tests for TerraformProvisioner.

asyncio.create_subprocess_exec is replaced by FakeProcess so argument
rendering, timeouts and cancellation can be checked without terraform.
"""

import asyncio
import signal
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from capacity_hunter.exceptions import OperationCancelled
from capacity_hunter.provisioning.exceptions import ProvisionerError, ProvisionerTimeout
from capacity_hunter.provisioning.terraform import TerraformProvisioner, var_args

SUBPROCESS_EXEC = "capacity_hunter.provisioning.terraform.asyncio.create_subprocess_exec"


class FakeProcess:
    """Minimal asyncio.subprocess.Process double."""

    def __init__(self, output: bytes = b"", returncode: int = 0, hang: bool = False):
        self.pid = 4242
        self.returncode = None
        self.signals: list = []
        self._output = output
        self._final_returncode = returncode
        self._hang = hang
        self._released = asyncio.Event()

    async def communicate(self):
        if self._hang:
            await self._released.wait()
        self.returncode = -2 if self.signals else self._final_returncode
        return self._output, None

    def send_signal(self, sig):
        self.signals.append(sig)
        self._released.set()

    def kill(self):
        self.signals.append("kill")
        self._released.set()


def test_var_args_render_every_variable():
    assert var_args({"ocpus": "4", "instance_name": "a1-x"}) == [
        "-var=ocpus=4",
        "-var=instance_name=a1-x",
    ]


def test_is_available_checks_path():
    with patch("capacity_hunter.provisioning.terraform.shutil.which", return_value=None):
        assert TerraformProvisioner("terraform").is_available() is False
    with patch("capacity_hunter.provisioning.terraform.shutil.which", return_value="/usr/bin/terraform"):
        assert TerraformProvisioner("terraform").is_available() is True


def test_is_initialized(tmp_path: Path):
    provisioner = TerraformProvisioner()
    assert provisioner.is_initialized(tmp_path) is False
    (tmp_path / ".terraform").mkdir()
    assert provisioner.is_initialized(tmp_path) is True


@pytest.mark.asyncio
async def test_plan_success_saves_artifact(tmp_path: Path):
    exec_mock = AsyncMock(return_value=FakeProcess(b"Plan: 1 to add"))

    with patch(SUBPROCESS_EXEC, exec_mock):
        result = await TerraformProvisioner().plan(tmp_path, {"ocpus": "4"}, plan_file="tfplan")

    assert result.success
    assert result.plan_artifact == tmp_path / "tfplan"
    assert result.raw_output == "Plan: 1 to add"
    args = exec_mock.await_args.args
    assert args[0] == "terraform"
    assert args[1] == "plan"
    assert "-var=ocpus=4" in args
    assert "-out=tfplan" in args
    assert exec_mock.await_args.kwargs["cwd"] == str(tmp_path)
    assert exec_mock.await_args.kwargs["env"]["TF_IN_AUTOMATION"] == "1"


@pytest.mark.asyncio
async def test_plan_without_plan_file(tmp_path: Path):
    exec_mock = AsyncMock(return_value=FakeProcess(b"Plan: 1 to add"))

    with patch(SUBPROCESS_EXEC, exec_mock):
        result = await TerraformProvisioner().plan(tmp_path, {}, plan_file=None)

    assert result.plan_artifact is None
    assert not any(str(a).startswith("-out=") for a in exec_mock.await_args.args)


@pytest.mark.asyncio
async def test_plan_failure(tmp_path: Path):
    with patch(SUBPROCESS_EXEC, AsyncMock(return_value=FakeProcess(b"Error: Out of host capacity", 1))):
        result = await TerraformProvisioner().plan(tmp_path, {})

    assert not result.success
    assert result.plan_artifact is None
    assert "Out of host capacity" in result.raw_output


@pytest.mark.asyncio
async def test_apply_success_reads_outputs(tmp_path: Path):
    apply_proc = FakeProcess(b"Apply complete!")
    output_proc = FakeProcess(b'{"public_ip": {"value": "203.0.113.10", "type": "string"}}')

    with patch(SUBPROCESS_EXEC, AsyncMock(side_effect=[apply_proc, output_proc])):
        result = await TerraformProvisioner().apply(tmp_path, tmp_path / "tfplan")

    assert result.success
    assert result.exit_code == 0
    assert result.outputs == {"public_ip": "203.0.113.10"}


@pytest.mark.asyncio
async def test_apply_failure_skips_outputs(tmp_path: Path):
    exec_mock = AsyncMock(return_value=FakeProcess(b"Error: 500-InternalError", 1))

    with patch(SUBPROCESS_EXEC, exec_mock):
        result = await TerraformProvisioner().apply(tmp_path, tmp_path / "tfplan")

    assert not result.success
    assert result.exit_code == 1
    assert result.outputs == {}
    assert exec_mock.await_count == 1


@pytest.mark.asyncio
async def test_init_failure_raises(tmp_path: Path):
    with patch(SUBPROCESS_EXEC, AsyncMock(return_value=FakeProcess(b"Error: provider", 1))):
        with pytest.raises(ProvisionerError, match="initialize"):
            await TerraformProvisioner().init(tmp_path)


@pytest.mark.asyncio
async def test_missing_binary_raises(tmp_path: Path):
    with patch(SUBPROCESS_EXEC, AsyncMock(side_effect=FileNotFoundError("terraform"))):
        with pytest.raises(ProvisionerError, match="not found"):
            await TerraformProvisioner().plan(tmp_path, {})


@pytest.mark.asyncio
async def test_timeout_interrupts_process(tmp_path: Path):
    proc = FakeProcess(hang=True)

    with patch(SUBPROCESS_EXEC, AsyncMock(return_value=proc)):
        with pytest.raises(ProvisionerTimeout):
            await TerraformProvisioner().plan(tmp_path, {}, timeout=0.05)

    assert proc.signals == [signal.SIGINT]


@pytest.mark.asyncio
async def test_cancellation_interrupts_process(tmp_path: Path, token):
    proc = FakeProcess(hang=True)
    asyncio.get_running_loop().call_later(0.05, token.cancel, "SIGINT")

    with patch(SUBPROCESS_EXEC, AsyncMock(return_value=proc)):
        with pytest.raises(OperationCancelled):
            await TerraformProvisioner().apply(tmp_path, tmp_path / "tfplan", timeout=5, token=token)

    assert proc.signals == [signal.SIGINT]


@pytest.mark.asyncio
async def test_destroy_passes_variables(tmp_path: Path):
    exec_mock = AsyncMock(return_value=FakeProcess(b"Destroy complete!"))

    with patch(SUBPROCESS_EXEC, exec_mock):
        result = await TerraformProvisioner().destroy(tmp_path, {"instance_name": "a1-x"})

    assert result.success
    assert "-auto-approve" in exec_mock.await_args.args
    assert "-var=instance_name=a1-x" in exec_mock.await_args.args


@pytest.mark.asyncio
async def test_output_invalid_json_returns_empty(tmp_path: Path):
    with patch(SUBPROCESS_EXEC, AsyncMock(return_value=FakeProcess(b"not json"))):
        assert await TerraformProvisioner().output(tmp_path) == {}

"""
Unit tests for RetryOrchestrator.

ProvisionAttempt and the token's sleep are mocked so rounds, backoff
sleeps and termination can be counted exactly.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from capacity_hunter.exceptions import ConfigurationError, OperationCancelled, QuotaExceeded
from capacity_hunter.models.domain import AttemptRecord
from capacity_hunter.models.enums import AttemptOutcome, OrchestratorState
from capacity_hunter.provisioning.attempt import ProvisionAttempt
from capacity_hunter.retry.backoff import BackoffPolicy
from capacity_hunter.retry.engine import RetryOrchestrator
from capacity_hunter.retry.metadata import OrchestrationResult


def make_record(target, outcome: AttemptOutcome) -> AttemptRecord:
    return AttemptRecord(
        outcome=outcome,
        target=target,
        instance_name=f"a1-flex-instance-20260101-000000-{target.suffix}",
        diagnostic="" if outcome is AttemptOutcome.SUCCESS else f"{outcome.value} output",
    )


def make_attempt(outcomes_by_call):
    """Mock ProvisionAttempt returning one scripted outcome per call."""
    attempt = MagicMock(spec=ProvisionAttempt)
    script = list(outcomes_by_call)
    calls = []

    async def _run(target):
        calls.append(target)
        return make_record(target, script.pop(0))

    attempt.run = AsyncMock(side_effect=_run)
    attempt.calls = calls
    return attempt


def make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token):
    token.sleep = AsyncMock()
    return RetryOrchestrator(
        settings=test_settings,
        cloud_api=mock_cloud_api,
        provisioner=mock_provisioner,
        attempt=attempt,
        backoff=BackoffPolicy(min_delay=20, max_delay=60),
        targets=targets,
        token=token,
    )


# ============================================================================
# Termination
# ============================================================================


@pytest.mark.asyncio
async def test_stops_at_first_success(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt([AttemptOutcome.SUCCESS, AttemptOutcome.SUCCESS])
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    result = await orchestrator.run()

    assert isinstance(result, OrchestrationResult)
    assert result.record.target == targets[0]
    assert result.rounds == 1
    assert result.total_attempts == 1
    assert attempt.run.await_count == 1
    token.sleep.assert_not_awaited()
    assert orchestrator.state is OrchestratorState.SUCCEEDED


@pytest.mark.asyncio
async def test_success_in_second_target_skips_backoff(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt([AttemptOutcome.CAPACITY_EXHAUSTED, AttemptOutcome.SUCCESS])
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    result = await orchestrator.run()

    assert result.record.target == targets[1]
    assert attempt.calls == targets
    token.sleep.assert_not_awaited()


# ============================================================================
# Rounds and Backoff
# ============================================================================


@pytest.mark.asyncio
async def test_one_backoff_sleep_per_failed_round(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    """Capacity errors for two full rounds, then success on round three."""
    attempt = make_attempt(
        [
            AttemptOutcome.CAPACITY_EXHAUSTED,
            AttemptOutcome.UNEXPECTED_ERROR,
            AttemptOutcome.CAPACITY_EXHAUSTED,
            AttemptOutcome.CAPACITY_EXHAUSTED,
            AttemptOutcome.SUCCESS,
        ]
    )
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    result = await orchestrator.run()

    assert result.rounds == 3
    assert result.total_attempts == 5
    assert token.sleep.await_count == 2
    for call in token.sleep.await_args_list:
        assert 20 <= call.args[0] <= 60


@pytest.mark.asyncio
async def test_targets_iterated_in_ordinal_order(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt(
        [AttemptOutcome.CAPACITY_EXHAUSTED, AttemptOutcome.CAPACITY_EXHAUSTED, AttemptOutcome.SUCCESS]
    )
    orchestrator = make_orchestrator(
        test_settings, mock_cloud_api, mock_provisioner, attempt, list(reversed(targets)), token
    )

    await orchestrator.run()

    assert attempt.calls == [targets[0], targets[1], targets[0]]


# ============================================================================
# Quota Exceeded
# ============================================================================


@pytest.mark.asyncio
async def test_quota_exceeded_target_never_retried(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt(
        [
            AttemptOutcome.QUOTA_EXCEEDED,
            AttemptOutcome.CAPACITY_EXHAUSTED,
            AttemptOutcome.CAPACITY_EXHAUSTED,
            AttemptOutcome.SUCCESS,
        ]
    )
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    result = await orchestrator.run()

    assert attempt.calls == [targets[0], targets[1], targets[1], targets[1]]
    assert result.record.target == targets[1]
    assert token.sleep.await_count == 2


@pytest.mark.asyncio
async def test_quota_exceeded_everywhere_stops_run(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt([AttemptOutcome.QUOTA_EXCEEDED, AttemptOutcome.QUOTA_EXCEEDED])
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    with pytest.raises(QuotaExceeded):
        await orchestrator.run()

    assert attempt.run.await_count == 2
    token.sleep.assert_not_awaited()
    assert orchestrator.state is OrchestratorState.TERMINATED


# ============================================================================
# Prerequisites and Cancellation
# ============================================================================


@pytest.mark.asyncio
async def test_unauthenticated_cloud_api_is_fatal(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    mock_cloud_api.is_authenticated = AsyncMock(return_value=False)
    attempt = make_attempt([])
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    with pytest.raises(ConfigurationError):
        await orchestrator.run()

    attempt.run.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_provisioner_is_fatal(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    mock_provisioner.is_available.return_value = False
    attempt = make_attempt([])
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    with pytest.raises(ConfigurationError, match="Terraform"):
        await orchestrator.run()


@pytest.mark.asyncio
async def test_configuration_error_from_attempt_propagates(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = MagicMock(spec=ProvisionAttempt)
    attempt.run = AsyncMock(side_effect=ConfigurationError("SSH public key not found"))
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    with pytest.raises(ConfigurationError):
        await orchestrator.run()

    assert attempt.run.await_count == 1


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_loop(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt([AttemptOutcome.CAPACITY_EXHAUSTED] * 4)
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)
    token.sleep = AsyncMock(side_effect=OperationCancelled("Operation cancelled: SIGINT"))

    with pytest.raises(OperationCancelled):
        await orchestrator.run()

    assert attempt.run.await_count == 2
    assert orchestrator.state is OrchestratorState.TERMINATED


@pytest.mark.asyncio
async def test_cancelled_token_prevents_next_attempt(test_settings, mock_cloud_api, mock_provisioner, targets, token):
    attempt = make_attempt([AttemptOutcome.CAPACITY_EXHAUSTED] * 2)

    async def _run_then_cancel(target):
        token.cancel("SIGTERM")
        return make_record(target, AttemptOutcome.CAPACITY_EXHAUSTED)

    attempt.run = AsyncMock(side_effect=_run_then_cancel)
    orchestrator = make_orchestrator(test_settings, mock_cloud_api, mock_provisioner, attempt, targets, token)

    with pytest.raises(OperationCancelled):
        await orchestrator.run()

    assert attempt.run.await_count == 1


def test_requires_targets(test_settings, mock_cloud_api, mock_provisioner, token):
    with pytest.raises(ConfigurationError):
        RetryOrchestrator(
            test_settings,
            mock_cloud_api,
            mock_provisioner,
            MagicMock(spec=ProvisionAttempt),
            BackoffPolicy(20, 60),
            [],
            token,
        )


def test_orchestration_result_rejects_failed_record(targets):
    with pytest.raises(ValueError):
        OrchestrationResult(
            record=make_record(targets[0], AttemptOutcome.CAPACITY_EXHAUSTED),
            rounds=1,
            total_attempts=1,
            elapsed_seconds=0.0,
        )

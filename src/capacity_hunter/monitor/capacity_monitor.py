"""
Capacity monitor loop.

Cheaper alternative entry point to the RetryOrchestrator: probes the
placement targets on a fixed cadence with one ProbeStrategy and only hands
over to the orchestrator once capacity shows up and the operator agrees.

Phases:
    CHECKING -> DETECTED -> AWAITING_DECISION -> DEPLOYING | EXITING
    CHECKING -> NOT_DETECTED -> SLEEPING -> CHECKING
"""

import time
from typing import Callable, Optional, Sequence

import structlog

from capacity_hunter.cancellation import CancellationToken
from capacity_hunter.config import Settings
from capacity_hunter.exceptions import ConfigurationError
from capacity_hunter.models.domain import PlacementTarget, ProbeResult, utcnow
from capacity_hunter.models.enums import MonitorPhase
from capacity_hunter.monitor.prompt import OperatorPrompt
from capacity_hunter.monitor.state import MonitorState
from capacity_hunter.monitoring.metrics import capacity_detected_total
from capacity_hunter.notifications.base import BaseNotifier
from capacity_hunter.probes.strategies import ProbeStrategy
from capacity_hunter.retry.engine import RetryOrchestrator
from capacity_hunter.retry.metadata import OrchestrationResult

logger = structlog.get_logger(__name__)

MANUAL_DEPLOY_HINT = "To deploy manually, run: capacity-deploy"


class CapacityMonitor:
    """
    Polls for capacity and alerts the operator.

    Attributes:
        settings: Application settings (cadence, confirm timeout, heartbeat)
        probe: Probe chain for the monitor's tier
        targets: Placement targets checked each cycle, in order
        notifier: Operator notification channel
        prompt: Deploy confirmation prompt
        token: Cancellation token
        orchestrator_factory: Builds the RetryOrchestrator on confirmation
        interval: Seconds between checks
        state: MonitorState for this invocation
    """

    def __init__(
        self,
        settings: Settings,
        probe: ProbeStrategy,
        targets: Sequence[PlacementTarget],
        notifier: BaseNotifier,
        prompt: OperatorPrompt,
        token: CancellationToken,
        orchestrator_factory: Callable[[], RetryOrchestrator],
        interval: Optional[int] = None,
    ):
        if not targets:
            raise ConfigurationError("At least one placement target is required")

        self.settings = settings
        self.probe = probe
        self.targets = sorted(targets, key=lambda t: t.ordinal)
        self.notifier = notifier
        self.prompt = prompt
        self.token = token
        self.orchestrator_factory = orchestrator_factory
        self.interval = settings.CHECK_INTERVAL if interval is None else interval
        self.state = MonitorState(tier=probe.tier)

    async def check_once(self) -> ProbeResult:
        """
        Run one probe cycle over the targets.

        Returns:
            The first positive ProbeResult, else the last negative one
        """
        self.state.phase = MonitorPhase.CHECKING
        self.state.attempt_count += 1
        logger.info(
            f"Check #{self.state.attempt_count}",
            tier=self.state.tier.value,
            targets=len(self.targets),
        )

        result: Optional[ProbeResult] = None
        for target in self.targets:
            result = await self.probe.check(target, self.token)
            if result.available:
                break

        self.state.last_check_at = utcnow()
        if result.available:
            self.state.phase = MonitorPhase.DETECTED
            self.state.consecutive_misses = 0
        else:
            self.state.phase = MonitorPhase.NOT_DETECTED
            self.state.consecutive_misses += 1
            logger.info("No capacity detected", detail=result.detail)
        return result

    async def alert(self, result: ProbeResult) -> None:
        """Log and notify a positive signal at the tier's urgency."""
        capacity_detected_total.labels(tier=result.tier.value).inc()
        logger.info(
            "A1.Flex capacity detected!",
            tier=result.tier.value,
            availability_domain=result.target.domain,
            detail=result.detail,
        )
        if result.cleanup_failed:
            logger.critical(
                "Test instance may still be running, check the OCI console",
                availability_domain=result.target.domain,
            )
        await self.notifier.notify(
            "OCI A1.Flex Capacity Available",
            f"{result.tier.description} check found capacity in {result.target.domain}",
            result.tier.urgency,
        )

    async def run(self) -> Optional[OrchestrationResult]:
        """
        Monitor until capacity appears, then offer to deploy.

        Returns:
            The orchestrator result if the operator confirmed deployment,
            None if they declined or did not answer in time

        Raises:
            OperationCancelled: Operator cancelled while monitoring
            ConfigurationError, QuotaExceeded: From the handed-off orchestrator
        """
        start = time.monotonic()
        logger.info(
            "Starting capacity monitor",
            tier=self.state.tier.value,
            interval_seconds=self.interval,
            targets=[t.domain for t in self.targets],
        )

        while True:
            result = await self.check_once()
            if result.available:
                return await self._on_detected(result)

            if self.state.consecutive_misses % self.settings.HEARTBEAT_EVERY == 0:
                logger.info(
                    "Still monitoring",
                    checks=self.state.attempt_count,
                    consecutive_misses=self.state.consecutive_misses,
                    elapsed_minutes=int((time.monotonic() - start) // 60),
                )

            self.state.phase = MonitorPhase.SLEEPING
            logger.debug(f"Waiting {self.interval} seconds before next check")
            await self.token.sleep(self.interval)

    async def _on_detected(self, result: ProbeResult) -> Optional[OrchestrationResult]:
        await self.alert(result)

        self.state.phase = MonitorPhase.AWAITING_DECISION
        confirmed = await self.prompt.confirm(
            "Capacity detected! Deploy now?",
            self.settings.CONFIRM_TIMEOUT,
            self.token,
        )
        if not confirmed:
            self.state.phase = MonitorPhase.EXITING
            logger.info("Deployment not confirmed", hint=MANUAL_DEPLOY_HINT)
            return None

        self.state.phase = MonitorPhase.DEPLOYING
        logger.info("Starting deployment")
        try:
            return await self.orchestrator_factory().run()
        finally:
            self.state.phase = MonitorPhase.EXITING

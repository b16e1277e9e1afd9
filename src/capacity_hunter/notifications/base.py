"""
Notifier interface.

Notifications are fire-and-forget: `notify()` schedules delivery as a
background task and returns at once, so a slow voice alert or an
unreachable chat API never holds up a hunt. Backends implement `_send()`
and may raise anything; `deliver()` logs the failure at debug level and
returns. `close()` waits a bounded time for in-flight deliveries and
cancels the rest.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import structlog

from capacity_hunter.models.enums import Urgency

logger = structlog.get_logger(__name__)

# Upper bound on how long close() waits for in-flight deliveries
DRAIN_TIMEOUT = 30.0


class BaseNotifier(ABC):
    """Abstract base class for notification channels."""

    name = "base"

    def __init__(self):
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._pending)

    async def notify(self, title: str, message: str, urgency: Urgency = Urgency.NORMAL) -> None:
        """Start delivering a notification in the background."""
        task = asyncio.create_task(
            self.deliver(title, message, urgency),
            name=f"notify-{self.name}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, title: str, message: str, urgency: Urgency = Urgency.NORMAL) -> None:
        """Deliver a notification now, swallowing any delivery failure."""
        try:
            await self._send(title, message, urgency)
        except Exception as e:
            logger.debug(
                "Notification delivery failed",
                channel=self.name,
                error_type=type(e).__name__,
                error=str(e),
            )

    @abstractmethod
    async def _send(self, title: str, message: str, urgency: Urgency) -> None:
        """
        Deliver the notification.

        Raises:
            NotificationFailure (or any error): Swallowed by deliver()
        """
        pass

    async def drain(self, timeout: Optional[float] = DRAIN_TIMEOUT) -> None:
        """
        Wait for in-flight deliveries.

        Deliveries still running after `timeout` seconds are cancelled.
        """
        if not self._pending:
            return

        _, unfinished = await asyncio.wait(set(self._pending), timeout=timeout)
        if unfinished:
            logger.debug(
                "Cancelling unfinished notifications",
                channel=self.name,
                count=len(unfinished),
            )
            for task in unfinished:
                task.cancel()
            await asyncio.gather(*unfinished, return_exceptions=True)

    async def close(self) -> None:
        await self.drain()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class NullNotifier(BaseNotifier):
    """Discards every notification (notifications disabled)."""

    name = "null"

    async def _send(self, title: str, message: str, urgency: Urgency) -> None:
        logger.debug("Notification suppressed", title=title, urgency=urgency.value)


class CompositeNotifier(BaseNotifier):
    """Fans one notification out to several channels concurrently."""

    name = "composite"

    def __init__(self, notifiers: Sequence[BaseNotifier]):
        super().__init__()
        self.notifiers = list(notifiers)

    async def _send(self, title: str, message: str, urgency: Urgency) -> None:
        await asyncio.gather(*(n.deliver(title, message, urgency) for n in self.notifiers))

    async def close(self) -> None:
        await super().close()
        for notifier in self.notifiers:
            await notifier.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({', '.join(n.name for n in self.notifiers)})"

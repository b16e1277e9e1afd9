"""
Cooperative cancellation for the hunting loops.

A single CancellationToken is created per invocation and threaded through
every call that can block: backoff sleeps, the monitor interval, the
operator prompt and Terraform subprocesses. SIGINT/SIGTERM trip it; each
suspension point then raises OperationCancelled so scoped cleanup
(workspace removal, test instance destroy) runs on the way out.
"""

import asyncio
from typing import Optional

import structlog

from capacity_hunter.exceptions import OperationCancelled

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Trip-once cancellation flag backed by an asyncio.Event."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.warning("Cancellation requested", reason=reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(f"Operation cancelled: {self.reason}", {"reason": self.reason})

    async def wait(self) -> None:
        """Block until the token is tripped."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for `seconds` unless cancelled first.

        Raises:
            OperationCancelled: If the token trips before or during the sleep
        """
        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()

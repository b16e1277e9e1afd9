"""
Operator confirmation prompts.

The monitor asks "deploy now?" with a bounded wait. ConsolePrompt reads
stdin through the event loop (loop.add_reader) so the wait observes both
the timeout and the cancellation token. StaticPrompt returns a fixed
answer for --auto-deploy and tests.
"""

import asyncio
import sys
from typing import Optional, Protocol, TextIO

import click
import structlog

from capacity_hunter.cancellation import CancellationToken

logger = structlog.get_logger(__name__)

AFFIRMATIVE = ("y", "yes")


class OperatorPrompt(Protocol):
    async def confirm(self, question: str, timeout: float, token: CancellationToken) -> bool:
        """
        Ask a yes/no question.

        Returns:
            True only on an explicit yes within `timeout` seconds

        Raises:
            OperationCancelled: Token tripped while waiting
        """
        ...


class ConsolePrompt:
    """Yes/no prompt on an interactive terminal."""

    def __init__(self, stream: Optional[TextIO] = None, require_tty: bool = True):
        self.stream = stream or sys.stdin
        self.require_tty = require_tty

    async def confirm(self, question: str, timeout: float, token: CancellationToken) -> bool:
        token.raise_if_cancelled()

        if self.require_tty and not self.stream.isatty():
            logger.info("No interactive terminal, skipping confirmation")
            return False

        loop = asyncio.get_running_loop()
        answer: asyncio.Future = loop.create_future()
        fd = self.stream.fileno()

        def _on_readable() -> None:
            line = self.stream.readline()
            if not answer.done():
                answer.set_result(line)

        click.echo(f"{question} (y/N, {int(timeout)}s timeout): ", nl=False)
        loop.add_reader(fd, _on_readable)
        cancel_wait = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {answer, cancel_wait}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            loop.remove_reader(fd)
            cancel_wait.cancel()
            if not answer.done():
                answer.cancel()

        token.raise_if_cancelled()

        if answer not in done:
            click.echo("")
            logger.info("No response within timeout", timeout=timeout)
            return False

        return answer.result().strip().lower() in AFFIRMATIVE


class StaticPrompt:
    """Prompt that always gives the same answer."""

    def __init__(self, answer: bool):
        self.answer = answer

    async def confirm(self, question: str, timeout: float, token: CancellationToken) -> bool:
        token.raise_if_cancelled()
        logger.info("Automatic answer", question=question, answer=self.answer)
        return self.answer

"""
Desktop, sound and voice notifications.

macOS uses osascript / afplay / say; Linux falls back to notify-send /
paplay / spd-say. Channels whose tool is not installed are skipped.
Louder sounds and faster speech for higher urgency; critical plays the
alert three times.
"""

import asyncio
import shutil
from typing import Optional

import structlog

from capacity_hunter.exceptions import NotificationFailure
from capacity_hunter.models.enums import Urgency
from capacity_hunter.notifications.base import BaseNotifier

logger = structlog.get_logger(__name__)

COMMAND_TIMEOUT = 15.0

MAC_SOUNDS = {
    Urgency.NORMAL: "Glass",
    Urgency.URGENT: "Sosumi",
    Urgency.CRITICAL: "Sosumi",
}

LINUX_SOUNDS = {
    Urgency.NORMAL: "/usr/share/sounds/freedesktop/stereo/message.oga",
    Urgency.URGENT: "/usr/share/sounds/freedesktop/stereo/complete.oga",
    Urgency.CRITICAL: "/usr/share/sounds/freedesktop/stereo/alarm-clock-elapsed.oga",
}

NOTIFY_SEND_URGENCY = {
    Urgency.NORMAL: "low",
    Urgency.URGENT: "normal",
    Urgency.CRITICAL: "critical",
}

VOICE_PREFIX = {
    Urgency.NORMAL: "A1 Flex notification",
    Urgency.URGENT: "Alert",
    Urgency.CRITICAL: "URGENT",
}

VOICE_RATE = {
    Urgency.NORMAL: None,
    Urgency.URGENT: 180,
    Urgency.CRITICAL: 200,
}


def applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


async def run_quiet(*args: str, timeout: float = COMMAND_TIMEOUT) -> None:
    """Run a notification helper, raising NotificationFailure on error."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        raise NotificationFailure(f"{args[0]} could not start: {e}") from e
    try:
        returncode = await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise NotificationFailure(f"{args[0]} timed out") from e
    if returncode != 0:
        raise NotificationFailure(f"{args[0]} exited with {returncode}")


class DesktopNotifier(BaseNotifier):
    """Local desktop banner plus optional sound and voice alerts."""

    name = "desktop"

    def __init__(self, enable_sounds: bool = True, enable_voice: bool = True):
        super().__init__()
        self.enable_sounds = enable_sounds
        self.enable_voice = enable_voice

    @staticmethod
    def _which(tool: str) -> Optional[str]:
        return shutil.which(tool)

    async def _banner(self, title: str, message: str, urgency: Urgency) -> None:
        if self._which("osascript"):
            script = (
                f"display notification {applescript_quote(message)} "
                f"with title {applescript_quote(title)} "
                f"sound name {applescript_quote(MAC_SOUNDS[urgency])}"
            )
            await run_quiet("osascript", "-e", script)
        elif self._which("notify-send"):
            await run_quiet("notify-send", "-u", NOTIFY_SEND_URGENCY[urgency], title, message)

    async def _sound(self, urgency: Urgency) -> None:
        repeats = 3 if urgency is Urgency.CRITICAL else 1
        if self._which("afplay"):
            command = ("afplay", f"/System/Library/Sounds/{MAC_SOUNDS[urgency]}.aiff")
        elif self._which("paplay"):
            command = ("paplay", LINUX_SOUNDS[urgency])
        else:
            return
        for i in range(repeats):
            if i:
                await asyncio.sleep(0.3)
            await run_quiet(*command)

    async def _voice(self, message: str, urgency: Urgency) -> None:
        text = f"{VOICE_PREFIX[urgency]}: {message}"
        rate = VOICE_RATE[urgency]
        if self._which("say"):
            args = ["say"]
            if rate:
                args += ["-v", "Samantha", "-r", str(rate)]
            await run_quiet(*args, text, timeout=60.0)
        elif self._which("spd-say"):
            args = ["spd-say", "--wait"]
            if rate:
                args += ["-r", "40"]
            await run_quiet(*args, text, timeout=60.0)

    async def _send(self, title: str, message: str, urgency: Urgency) -> None:
        channels = [self._banner(title, message, urgency)]
        if self.enable_sounds:
            channels.append(self._sound(urgency))
        if self.enable_voice:
            channels.append(self._voice(message, urgency))

        results = await asyncio.gather(*channels, return_exceptions=True)
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            raise NotificationFailure(
                f"{len(failures)} desktop channel(s) failed",
                {"errors": [str(f) for f in failures]},
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(sounds={self.enable_sounds}, voice={self.enable_voice})"

"""
Unit tests for notification channels.

Delivery runs in the background and failures never escape notify().
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from capacity_hunter.exceptions import NotificationFailure
from capacity_hunter.models.enums import Urgency
from capacity_hunter.notifications import (
    CompositeNotifier,
    DesktopNotifier,
    NullNotifier,
    TelegramNotifier,
    build_notifier,
)
from capacity_hunter.notifications.base import BaseNotifier
from capacity_hunter.notifications.desktop import applescript_quote


class ExplodingNotifier(BaseNotifier):
    name = "exploding"

    async def _send(self, title, message, urgency):
        raise RuntimeError("channel down")


class RecordingNotifier(BaseNotifier):
    name = "recording"

    def __init__(self):
        super().__init__()
        self.sent = []

    async def _send(self, title, message, urgency):
        self.sent.append((title, message, urgency))


@pytest.mark.asyncio
async def test_notify_swallows_failures():
    notifier = ExplodingNotifier()

    await notifier.notify("OCI Deployment Test", "hello", Urgency.URGENT)
    await notifier.close()

    assert notifier.pending == 0


@pytest.mark.asyncio
async def test_composite_continues_after_failure():
    recorder = RecordingNotifier()
    composite = CompositeNotifier([ExplodingNotifier(), recorder])

    await composite.notify("OCI Deployment Success", "Instance created", Urgency.CRITICAL)
    await composite.close()

    assert recorder.sent == [("OCI Deployment Success", "Instance created", Urgency.CRITICAL)]


class SlowNotifier(BaseNotifier):
    name = "slow"

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.sent = []

    async def _send(self, title, message, urgency):
        await asyncio.sleep(self.delay)
        self.sent.append(title)


@pytest.mark.asyncio
async def test_notify_returns_before_delivery_finishes():
    notifier = SlowNotifier(delay=0.2)

    await notifier.notify("OCI A1.Flex Capacity Available", "Found capacity", Urgency.CRITICAL)

    assert notifier.pending == 1
    assert notifier.sent == []

    await notifier.close()

    assert notifier.pending == 0
    assert notifier.sent == ["OCI A1.Flex Capacity Available"]


@pytest.mark.asyncio
async def test_drain_cancels_deliveries_past_timeout():
    notifier = SlowNotifier(delay=30)

    await notifier.notify("t", "m", Urgency.NORMAL)
    await notifier.drain(timeout=0.01)

    assert notifier.pending == 0
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_composite_sends_channels_concurrently():
    channels = [SlowNotifier(delay=0.2), SlowNotifier(delay=0.2)]
    composite = CompositeNotifier(channels)

    loop = asyncio.get_running_loop()
    start = loop.time()
    await composite.deliver("t", "m", Urgency.URGENT)
    elapsed = loop.time() - start

    assert [c.sent for c in channels] == [["t"], ["t"]]
    assert elapsed < 0.35


def test_build_notifier_disabled(test_settings):
    assert isinstance(build_notifier(test_settings), NullNotifier)


def test_build_notifier_desktop_only(test_settings):
    settings = test_settings.model_copy(update={"ENABLE_NOTIFICATIONS": True})

    notifier = build_notifier(settings)

    assert isinstance(notifier, CompositeNotifier)
    assert [type(n) for n in notifier.notifiers] == [DesktopNotifier]


def test_build_notifier_with_telegram(test_settings):
    settings = test_settings.model_copy(
        update={"ENABLE_NOTIFICATIONS": True, "TELEGRAM_TOKEN": "123:abc", "TELEGRAM_CHAT_ID": "42"}
    )

    notifier = build_notifier(settings)

    assert [type(n) for n in notifier.notifiers] == [DesktopNotifier, TelegramNotifier]


class TestTelegramNotifier:
    @pytest.mark.asyncio
    async def test_posts_message(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = TelegramNotifier("123:abc", "42", client=client)

        await notifier._send("OCI A1.Flex Capacity Available", "Found capacity", Urgency.CRITICAL)
        await notifier.close()

        assert len(requests) == 1
        assert requests[0].url.host == "api.telegram.org"
        assert requests[0].url.path.endswith("/sendMessage")
        payload = json.loads(requests[0].content)
        assert payload["chat_id"] == "42"
        assert "OCI A1.Flex Capacity Available" in payload["text"]
        assert payload["disable_notification"] is False

    @pytest.mark.asyncio
    async def test_http_error_raises_notification_failure(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(403)))
        notifier = TelegramNotifier("123:abc", "42", client=client)

        with pytest.raises(NotificationFailure):
            await notifier._send("t", "m", Urgency.NORMAL)

        # notify() swallows the same failure
        await notifier.notify("t", "m", Urgency.NORMAL)
        await notifier.close()


class TestDesktopNotifier:
    @pytest.mark.asyncio
    async def test_linux_banner_and_repeated_critical_sound(self):
        available = {"notify-send", "paplay"}
        run = AsyncMock()

        with patch.object(DesktopNotifier, "_which", staticmethod(lambda tool: tool if tool in available else None)), \
                patch("capacity_hunter.notifications.desktop.run_quiet", run):
            notifier = DesktopNotifier(enable_voice=False)
            await notifier.notify("Title", "Body", Urgency.CRITICAL)
            await notifier.drain()

        commands = [c.args[0] for c in run.await_args_list]
        assert commands.count("notify-send") == 1
        assert commands.count("paplay") == 3
        banner = next(c for c in run.await_args_list if c.args[0] == "notify-send")
        assert banner.args[1:3] == ("-u", "critical")

    @pytest.mark.asyncio
    async def test_no_tools_installed_is_silent(self):
        run = AsyncMock()

        with patch.object(DesktopNotifier, "_which", staticmethod(lambda tool: None)), \
                patch("capacity_hunter.notifications.desktop.run_quiet", run):
            notifier = DesktopNotifier()
            await notifier.notify("Title", "Body", Urgency.NORMAL)
            await notifier.drain()

        run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_channel_failure_reported_as_notification_failure(self):
        run = AsyncMock(side_effect=NotificationFailure("paplay exited with 1"))

        with patch.object(DesktopNotifier, "_which", staticmethod(lambda tool: tool)), \
                patch("capacity_hunter.notifications.desktop.run_quiet", run):
            with pytest.raises(NotificationFailure, match="desktop channel"):
                await DesktopNotifier(enable_voice=False)._send("Title", "Body", Urgency.NORMAL)


def test_applescript_quote_escapes():
    assert applescript_quote('say "hi"') == '"say \\"hi\\""'

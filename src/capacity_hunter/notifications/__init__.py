"""
Operator notification channels.

Exports:
- BaseNotifier, NullNotifier, CompositeNotifier
- DesktopNotifier: banner + sound + voice
- TelegramNotifier: chat message via the Bot API
- build_notifier: assemble channels from Settings
"""

from capacity_hunter.config import Settings
from capacity_hunter.notifications.base import BaseNotifier, CompositeNotifier, NullNotifier
from capacity_hunter.notifications.desktop import DesktopNotifier
from capacity_hunter.notifications.telegram import TelegramNotifier


def build_notifier(settings: Settings) -> BaseNotifier:
    """Build the notifier stack enabled by configuration."""
    if not settings.ENABLE_NOTIFICATIONS:
        return NullNotifier()

    notifiers: list[BaseNotifier] = [
        DesktopNotifier(
            enable_sounds=settings.ENABLE_SOUNDS,
            enable_voice=settings.ENABLE_VOICE,
        )
    ]
    if settings.TELEGRAM_TOKEN and settings.TELEGRAM_CHAT_ID:
        notifiers.append(TelegramNotifier(settings.TELEGRAM_TOKEN, settings.TELEGRAM_CHAT_ID))
    return CompositeNotifier(notifiers)


__all__ = [
    "BaseNotifier",
    "CompositeNotifier",
    "NullNotifier",
    "DesktopNotifier",
    "TelegramNotifier",
    "build_notifier",
]

"""Telegram notification adapter for Saved Messages.

Formats a Markdown message and sends it to the user's own Saved Messages
chat through a Telethon client.
"""

from __future__ import annotations

from telethon import TelegramClient

from adapters.notification_formatting import format_notification
from core.models import NotificationRequest


class TelegramSavedMessagesNotifier:
    """Notifier adapter that sends quips to the user's Saved Messages."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def send(self, request: NotificationRequest) -> str:
        """Send the formatted quip and return the Telegram message id."""

        message = format_notification(request, mode="markdown")
        sent = await self._client.send_message("me", message, parse_mode="Markdown")
        return str(sent.id)

"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so quips can be routed via a bot chat.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request

from adapters.notification_formatting import format_notification
from core.errors import DeliveryFailed
from core.models import NotificationRequest

METHOD = "telegram_bot"


class TelegramBotNotifier:
    """Notifier adapter that sends quips via the Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout

    def _endpoint(self) -> str:
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def build_payload(self, request: NotificationRequest) -> dict:
        return {
            "chat_id": self._chat_id,
            "text": format_notification(request, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            # Generic quips arrive silently; easter eggs ring.
            "disable_notification": not request.is_easter_egg,
        }

    def _post(self, payload: dict) -> str:
        data = json.dumps(payload).encode("utf-8")
        http_request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        http_request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(http_request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise DeliveryFailed(METHOD, f"Bot API error {e.code}: {body}") from e
        except urllib.error.URLError as e:
            raise DeliveryFailed(METHOD, f"Bot API unreachable: {e.reason}") from e
        if not body.get("ok"):
            raise DeliveryFailed(METHOD, f"Bot API refused message: {body.get('description')}")
        return str(body["result"]["message_id"])

    async def send(self, request: NotificationRequest) -> str:
        """Send the formatted quip via the Bot API and return the message id."""

        # The blocking HTTP call runs in a worker thread so the event loop
        # keeps serving other triggers.
        return await asyncio.to_thread(self._post, self.build_payload(request))

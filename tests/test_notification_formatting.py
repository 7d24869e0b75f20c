from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging

import pytest

from adapters.log_notifier import LogNotifier
from adapters.notification_formatting import DIVIDER, format_notification, format_plain
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from core.models import NotificationRequest


def _request(*, message: str = "Tab closed. Bold.", is_easter_egg: bool = False) -> NotificationRequest:
    return NotificationRequest(
        title="Easter Egg!" if is_easter_egg else "Tabby",
        message=message,
        priority=2 if is_easter_egg else 1,
        is_easter_egg=is_easter_egg,
        timestamp=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


def test_plain_format_joins_title_and_message() -> None:
    assert format_plain(_request()) == "Tabby: Tab closed. Bold."
    assert format_notification(_request(), mode="plain") == "Tabby: Tab closed. Bold."


def test_markdown_escapes_special_characters() -> None:
    text = format_notification(_request(message="*bold* _move_"), mode="markdown")

    assert "**Tabby**" in text
    assert "\\*bold\\* \\_move\\_" in text


def test_html_escapes_message() -> None:
    text = format_notification(_request(message="<script>"), mode="html")

    assert "<b>Tabby</b>" in text
    assert "&lt;script&gt;" in text
    assert "<script>" not in text


def test_easter_egg_gets_closing_divider() -> None:
    generic = format_notification(_request(), mode="html")
    egg = format_notification(_request(message="Don't Panic.", is_easter_egg=True), mode="html")

    assert generic.count(DIVIDER) == 1
    assert egg.count(DIVIDER) == 2
    assert "<b>Easter Egg!</b>" in egg


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_notification(_request(), mode="rtf")


def test_bot_payload_rings_only_for_easter_eggs() -> None:
    notifier = TelegramBotNotifier(bot_token="token", chat_id="123")

    generic = notifier.build_payload(_request())
    egg = notifier.build_payload(_request(is_easter_egg=True))

    assert generic["chat_id"] == "123"
    assert generic["parse_mode"] == "HTML"
    assert generic["disable_notification"] is True
    assert egg["disable_notification"] is False


def test_log_notifier_writes_plain_quip(caplog) -> None:
    logger = logging.getLogger("tests.quips")
    notifier = LogNotifier(logger)

    with caplog.at_level(logging.INFO, logger="tests.quips"):
        first = asyncio.run(notifier.send(_request()))
        second = asyncio.run(notifier.send(_request(is_easter_egg=True)))

    assert (first, second) == ("log-1", "log-2")
    assert "Tabby: Tab closed. Bold." in caplog.text


class FakeSentMessage:
    def __init__(self, message_id: int) -> None:
        self.id = message_id


class FakeTelegramClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    async def send_message(self, entity: str, message: str, parse_mode: str) -> FakeSentMessage:
        self.calls.append((entity, message, parse_mode))
        return FakeSentMessage(len(self.calls) + 100)


def test_saved_messages_notifier_sends_markdown_to_me() -> None:
    client = FakeTelegramClient()
    notifier = TelegramSavedMessagesNotifier(client)

    message_id = asyncio.run(notifier.send(_request(is_easter_egg=True)))

    assert message_id == "101"
    entity, message, parse_mode = client.calls[0]
    assert entity == "me"
    assert parse_mode == "Markdown"
    assert "**Easter Egg!**" in message

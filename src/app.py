"""Application entry point for the tabby quip engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import IO, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.event_feed import StaticTabState, read_events
from adapters.json_content_store import JsonContentStore
from adapters.log_notifier import LogNotifier
from adapters.sqlite_storage import SQLiteDeliveryLog
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from client import build_client, start_client
from core.config import HumorConfig, NotificationConfig
from core.context import make_active_tab
from core.models import HUMOR_LEVELS, TRIGGER_TYPES, DeliveryOutcome, HumorTrigger, TabState
from core.processor import HumorProcessor
from core.registry import RuleRegistry

NAME = "TABBY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = _RedactingFormatter(
        _collect_redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # Quips and logs go to stderr; stdout stays free for outcomes.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tabby.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _load_content() -> tuple[JsonContentStore, RuleRegistry]:
    content_store = JsonContentStore(settings.QUIPS_PATH, settings.EASTER_EGGS_PATH)
    content_store.load()
    registry = RuleRegistry(content_store)
    registry.load()
    return content_store, registry


class _Runtime:
    """Everything one command needs, with the Telegram session (if any)."""

    def __init__(self, processor: HumorProcessor, tab_state: StaticTabState, client=None) -> None:
        self.processor = processor
        self.tab_state = tab_state
        self.client = client

    async def close(self) -> None:
        if self.client is not None:
            await self.client.disconnect()


async def _build_runtime() -> _Runtime:
    logger = logging.getLogger(__name__)
    content_store, registry = _load_content()

    # Select the notification adapter based on configuration to keep the core
    # processor independent from delivery details.
    client = None
    if settings.NOTIFICATION_METHOD == "bot":
        load_dotenv()
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        notifier = TelegramBotNotifier(bot_token=bot_token, chat_id=str(settings.BOT_CHAT_ID))
    elif settings.NOTIFICATION_METHOD == "saved_messages":
        client = await start_client(build_client())
        notifier = TelegramSavedMessagesNotifier(client)
    elif settings.NOTIFICATION_METHOD == "log":
        notifier = LogNotifier()
    else:
        raise RuntimeError("notification_method must be 'log', 'saved_messages' or 'bot'")
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    tab_state = StaticTabState()
    processor = HumorProcessor(
        registry=registry,
        content_store=content_store,
        notifier=notifier,
        tab_state=tab_state,
        config=HumorConfig(
            level=settings.HUMOR_LEVEL,
            min_interval=settings.MIN_INTERVAL,
            history_size=settings.HISTORY_SIZE,
            recent_events_limit=settings.RECENT_EVENTS_LIMIT,
        ),
        notification_config=NotificationConfig(app_name=settings.APP_NAME),
    )

    if settings.DELIVERY_LOG_ENABLED:
        delivery_log = SQLiteDeliveryLog(settings.DB_PATH)
        delivery_log.init_db()
        processor.subscribe(delivery_log)

    return _Runtime(processor, tab_state, client)


def _print_outcome(outcome: DeliveryOutcome) -> None:
    print(
        json.dumps(
            {
                "delivered": outcome.delivered,
                "quip_text": outcome.quip_text,
                "delivery_method": outcome.delivery_method,
                "is_easter_egg": outcome.is_easter_egg,
                "easter_egg_id": outcome.easter_egg_id,
                "matched_conditions": list(outcome.matched_conditions),
                "trigger_type": outcome.trigger_type,
                "timestamp": outcome.timestamp.isoformat(),
                "error": outcome.error,
            },
            ensure_ascii=False,
        ),
        flush=True,
    )


async def _run_feed(stream: IO[str]) -> None:
    logger = logging.getLogger(__name__)
    runtime = await _build_runtime()
    logger.info("Listening for tab events...")
    delivered = 0
    try:
        # Triggers are handled one at a time, in feed order.
        async for trigger in read_events(stream, runtime.tab_state):
            outcome = await runtime.processor.deliver(trigger)
            delivered += int(outcome.delivered)
            _print_outcome(outcome)
    finally:
        await runtime.close()
    logger.info("Event feed closed after %s delivered quips", delivered)


def _run(events_path: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting tabby")

    if events_path:
        with open(events_path, "r", encoding="utf-8") as handle:
            asyncio.run(_run_feed(handle))
        return
    asyncio.run(_run_feed(sys.stdin))


async def _trigger_once(args: argparse.Namespace) -> None:
    runtime = await _build_runtime()
    try:
        if args.level:
            runtime.processor.set_humor_level(args.level)
        active_tab = make_active_tab(args.url, args.title or "") if args.url else None
        runtime.tab_state.update(
            TabState(tab_count=args.tab_count, group_count=args.group_count, active_tab=active_tab)
        )
        outcome = await runtime.processor.deliver(HumorTrigger(type=args.type))
        _print_outcome(outcome)
    finally:
        await runtime.close()


def _trigger(args: argparse.Namespace) -> None:
    _configure_logging()
    asyncio.run(_trigger_once(args))


def _rules() -> None:
    _print_banner()
    _configure_logging()
    content_store, registry = _load_content()
    for index, rule in enumerate(registry.get_all(), start=1):
        conditions = ", ".join(rule.conditions.present())
        line = f"{index}. [{rule.priority} {rule.difficulty}] {rule.id} | {rule.type} | {conditions}"
        if rule.niche_reference:
            line += f" | {rule.niche_reference}"
        print(line)
    print(f"Generic quip categories: {', '.join(content_store.get_available_trigger_types())}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tabby")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Deliver quips for tab events read as JSON lines")
    run_parser.add_argument("--events", help="Read events from a file instead of stdin")

    trigger_parser = subparsers.add_parser("trigger", help="Deliver one quip for a single event")
    trigger_parser.add_argument("type", help=f"Trigger type, one of: {', '.join(sorted(TRIGGER_TYPES))}")
    trigger_parser.add_argument("--tab-count", type=int, default=0)
    trigger_parser.add_argument("--group-count", type=int, default=0)
    trigger_parser.add_argument("--url", help="Active tab URL")
    trigger_parser.add_argument("--title", help="Active tab title")
    trigger_parser.add_argument("--level", choices=HUMOR_LEVELS)

    subparsers.add_parser("rules", help="List easter egg rules in evaluation order")

    args = parser.parse_args(argv)
    if args.command == "trigger":
        _trigger(args)
        return
    if args.command == "rules":
        _rules()
        return
    _run(getattr(args, "events", None))


if __name__ == "__main__":
    main()

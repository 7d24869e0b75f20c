"""Telegram session helpers for the Saved Messages notifier.

Only the saved_messages notification method needs a user session; the bot
and log methods never import Telethon state at runtime.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION = "tabby"


def _api_credentials() -> tuple[int, str]:
    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    try:
        return int(api_id), api_hash
    except ValueError as exc:
        raise RuntimeError(f"API_ID must be numeric, got {api_id!r}") from exc


def build_client(session_name: Optional[str] = None) -> TelegramClient:
    """Create a Telethon client from .env credentials.

    The session file is named after SESSION_NAME unless one is passed in.
    """

    load_dotenv()
    api_id, api_hash = _api_credentials()
    session = session_name or os.getenv("SESSION_NAME", DEFAULT_SESSION)
    LOGGER.info("Initializing Telegram client for session %s", session)
    return TelegramClient(session, api_id, api_hash)


async def start_client(client: TelegramClient) -> TelegramClient:
    """Connect, running the interactive login when no session exists yet."""

    await client.start()
    me = await client.get_me()
    LOGGER.info("Telegram session ready for %s", getattr(me, "username", None) or getattr(me, "id", "?"))
    return client

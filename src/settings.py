"""Static configuration for tabby.

All user-editable settings (content paths, humor policy, notifications,
logging) live in a single JSON file for quick edits without touching Python.
"""

import json
import os
from datetime import timedelta

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# TABBY_CONFIG points at an alternative config.json (useful outside the repo).
CONFIG_PATH = os.getenv("TABBY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    """Relative paths are taken from the directory holding config.json."""

    if os.path.isabs(path):
        return path
    return os.path.join(os.path.dirname(os.path.abspath(CONFIG_PATH)), path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Content catalogs feeding the rule registry and the quip pools.
_content = _CONFIG.get("content", {})
QUIPS_PATH = _resolve_path(_content.get("quips_path", "data/quips.json"))
EASTER_EGGS_PATH = _resolve_path(_content.get("easter_eggs_path", "data/easter_eggs.json"))

# Humor policy:
# - HUMOR_LEVEL: "default", "mild", or "intense"
# - MIN_INTERVAL: minimum gap between two delivered quips
# - HISTORY_SIZE: how many recent quips are avoided when picking the next one
# - RECENT_EVENTS_LIMIT: how many trigger types the context remembers
_humor = _CONFIG.get("humor", {})
HUMOR_LEVEL = _humor.get("level", "default")
MIN_INTERVAL = timedelta(seconds=float(_humor.get("min_interval_seconds", 5)))
HISTORY_SIZE = int(_humor.get("history_size", 10))
RECENT_EVENTS_LIMIT = int(_humor.get("recent_events_limit", 10))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "log")
APP_NAME = _notifications.get("app_name", "Tabby")
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Delivered quips can be appended to a local SQLite log.
_delivery_log = _CONFIG.get("delivery_log", {})
DELIVERY_LOG_ENABLED = bool(_delivery_log.get("enabled", False))
DB_PATH = _resolve_path(_delivery_log.get("path", "tabby.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

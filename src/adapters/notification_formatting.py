"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from core.models import NotificationRequest

DIVIDER = "──────────────"


def _timestamp(request: NotificationRequest) -> str:
    return request.timestamp.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _format_markdown(request: NotificationRequest) -> str:
    """Create the Markdown body used by Saved Messages."""

    # Telegram Markdown is supported by passing parse_mode="Markdown".
    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{_timestamp(request)}]",
        f"**{escape_md(request.title)}**",
        DIVIDER,
        "",
        escape_md(request.message),
    ]
    if request.is_easter_egg:
        lines.extend(["", DIVIDER])
    return "\n".join(lines)


def _format_html(request: NotificationRequest) -> str:
    """Create the HTML body used by the Bot API adapter."""

    parts = [
        f"[{html.escape(_timestamp(request))}]",
        f"<b>{html.escape(request.title)}</b>",
        DIVIDER,
        "",
        html.escape(request.message),
    ]
    if request.is_easter_egg:
        parts.extend(["", DIVIDER])
    return "\n".join(parts)


def format_plain(request: NotificationRequest) -> str:
    return f"{request.title}: {request.message}"


def format_notification(request: NotificationRequest, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(request)
    if mode == "html":
        return _format_html(request)
    if mode == "plain":
        return format_plain(request)
    raise ValueError(f"Unsupported notification format: {mode}")

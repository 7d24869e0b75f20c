"""Logging notification adapter.

Default sink when no chat channel is configured: quips are written to the
application log, which is handy for local runs and for piping the feed.
"""

from __future__ import annotations

import itertools
import logging

from adapters.notification_formatting import format_plain
from core.models import NotificationRequest

LOGGER = logging.getLogger("tabby.quips")


class LogNotifier:
    """Notifier adapter that writes quips to a logger."""

    def __init__(self, logger: logging.Logger = LOGGER) -> None:
        self._logger = logger
        self._ids = itertools.count(1)

    async def send(self, request: NotificationRequest) -> str:
        self._logger.info("%s", format_plain(request))
        return f"log-{next(self._ids)}"

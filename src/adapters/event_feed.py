"""JSON-lines tab event feed adapter.

Maps the events a browser host emits into core HumorTrigger values and keeps
the latest tab state for the context builder. One JSON object per line:

    {"type": "TabClosed", "data": {...}, "tabs": {"tab_count": 12,
     "group_count": 2, "active_tab": {"url": "...", "title": "..."}}}
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import IO, Any, AsyncIterator, Mapping, Optional

from core.context import make_active_tab
from core.models import HumorTrigger, TabState

LOGGER = logging.getLogger(__name__)


class StaticTabState:
    """TabStatePort holding whatever the feed last reported."""

    def __init__(self, state: Optional[TabState] = None) -> None:
        self._state = state or TabState()

    def current_state(self) -> TabState:
        return self._state

    def update(self, state: TabState) -> None:
        self._state = state


def parse_tab_state(raw: Any) -> TabState:
    if not isinstance(raw, Mapping):
        raise ValueError("tabs must be a JSON object")
    active = raw.get("active_tab")
    active_tab = None
    if active:
        if not isinstance(active, Mapping):
            raise ValueError("tabs.active_tab must be a JSON object")
        active_tab = make_active_tab(
            url=str(active.get("url", "")),
            title=str(active.get("title", "")),
            domain=active.get("domain"),
        )
    return TabState(
        tab_count=int(raw.get("tab_count", 0)),
        group_count=int(raw.get("group_count", 0)),
        active_tab=active_tab,
    )


def parse_event_line(line: str) -> tuple[HumorTrigger, Optional[TabState]]:
    """Parse one feed line into a trigger and an optional tab state update.

    Raises ValueError (or TypeError for badly typed tab fields) for lines
    that are not a JSON object with a type.
    """

    payload = json.loads(line)
    if not isinstance(payload, dict) or not payload.get("type"):
        raise ValueError("Event must be a JSON object with a type")

    data = payload.get("data") or {}
    if not isinstance(data, Mapping):
        raise ValueError("data must be a JSON object")

    trigger = HumorTrigger(type=str(payload["type"]), data=dict(data))
    tabs = payload.get("tabs")
    return trigger, parse_tab_state(tabs) if tabs else None


async def read_events(stream: IO[str], tab_state: StaticTabState) -> AsyncIterator[HumorTrigger]:
    """Yield triggers from a stream, applying tab state updates as they come.

    Lines are read in a worker thread so a quiet stdin never blocks the event
    loop. Malformed lines are logged and skipped so one bad event cannot stop
    the feed.
    """

    number = 0
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        number += 1
        if not line.strip():
            continue
        try:
            trigger, state = parse_event_line(line)
        except (ValueError, TypeError) as exc:
            LOGGER.warning("Skipping malformed event on line %s: %s", number, exc)
            continue
        if state is not None:
            tab_state.update(state)
        yield trigger

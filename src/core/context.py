"""Context snapshot builder (core domain).

Pure functions over data the caller already holds; no I/O.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Deque, Iterable, Optional
from urllib.parse import urlsplit

from core.models import ActiveTab, ContextSnapshot, HumorTrigger, TabState


def domain_from_url(url: str) -> str:
    """Return the lowercased host of a URL, or an empty string."""

    if not url:
        return ""
    host = urlsplit(url if "//" in url else f"//{url}").hostname
    return host or ""


def make_active_tab(url: str, title: str, domain: Optional[str] = None) -> ActiveTab:
    return ActiveTab(
        url=url,
        title=title or "Untitled",
        domain=domain if domain is not None else domain_from_url(url),
    )


def push_recent_event(recent: Deque[str], event_type: str) -> None:
    """Record an event most-recent-first; the deque's maxlen bounds it."""

    recent.appendleft(event_type)


def new_recent_events(limit: int) -> Deque[str]:
    return deque(maxlen=limit)


def _payload_int(trigger: HumorTrigger, key: str) -> Optional[int]:
    value = trigger.data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def build_context(
    trigger: HumorTrigger,
    tab_state: TabState,
    now: datetime,
    recent_events: Iterable[str] = (),
) -> ContextSnapshot:
    """Assemble the snapshot the condition engine evaluates.

    Counts carried by the trigger payload (group creation, too-many-tabs)
    take precedence over the collaborator's tab count since they describe
    the state at the moment the event fired.
    """

    tab_count = _payload_int(trigger, "tab_count")
    return ContextSnapshot(
        tab_count=tab_count if tab_count is not None else tab_state.tab_count,
        active_tab=tab_state.active_tab,
        current_hour=now.hour,
        recent_events=tuple(recent_events),
        group_count=tab_state.group_count,
    )

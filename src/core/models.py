"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any browser- or channel-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

# Trigger types double as generic quip categories.
TAB_GROUP_CREATED = "TabGroupCreated"
TAB_CLOSED = "TabClosed"
FEELING_LUCKY_CLICKED = "FeelingLuckyClicked"
TAB_OPENED = "TabOpened"
TOO_MANY_TABS = "TooManyTabs"
MANUAL_TRIGGER = "ManualTrigger"

TRIGGER_TYPES = frozenset(
    {
        TAB_GROUP_CREATED,
        TAB_CLOSED,
        FEELING_LUCKY_CLICKED,
        TAB_OPENED,
        TOO_MANY_TABS,
        MANUAL_TRIGGER,
    }
)

# Intensity tiers for quip content.
HUMOR_LEVELS = ("default", "mild", "intense")

DELIVERY_METHOD_NOTIFICATION = "notification"
DELIVERY_METHOD_NONE = "none"


@dataclass(frozen=True)
class ActiveTab:
    url: str
    title: str
    domain: str


@dataclass(frozen=True)
class TabState:
    """What the tab collaborator knows right now."""

    tab_count: int = 0
    group_count: int = 0
    active_tab: Optional[ActiveTab] = None


@dataclass(frozen=True)
class HumorTrigger:
    """An event requesting a humor delivery attempt."""

    type: str
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContextSnapshot:
    """Point-in-time view of the browsing environment.

    Built fresh for every trigger and discarded after one evaluation pass.
    """

    tab_count: int
    active_tab: Optional[ActiveTab]
    current_hour: int
    recent_events: Tuple[str, ...]
    group_count: int


@dataclass(frozen=True)
class GenericQuip:
    id: str
    text: str
    category_tags: frozenset[str]
    level: str


@dataclass(frozen=True)
class NotificationRequest:
    """Display request handed to a notifier adapter."""

    title: str
    message: str
    priority: int
    is_easter_egg: bool
    timestamp: datetime


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one deliver() call, also broadcast to subscribers."""

    delivered: bool
    quip_text: Optional[str]
    delivery_method: str
    is_easter_egg: bool
    timestamp: datetime
    trigger_type: str = ""
    easter_egg_id: Optional[str] = None
    matched_conditions: Tuple[str, ...] = ()
    notification_id: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def throttled(self) -> bool:
        return not self.delivered and self.error is None

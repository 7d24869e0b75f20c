"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for content, tab state, and notification
adapters so that the core can be reused with different hosts and channels.
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Protocol

from core.models import DeliveryOutcome, GenericQuip, NotificationRequest, TabState


class ContentStorePort(Protocol):
    """Content operations required by the registry and the orchestrator.

    Implementations raise ContentStoreError subclasses on failure.
    """

    def get_all_easter_eggs(self) -> List[Mapping[str, Any]]:
        ...

    async def get_generic_quips(self, level: str, category: str) -> List[GenericQuip]:
        ...

    async def get_easter_egg_quips(self, egg_type: str, level: str) -> List[str]:
        ...


class TabStatePort(Protocol):
    """Already-available tab data; reading it never suspends."""

    def current_state(self) -> TabState:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the core pipeline."""

    async def send(self, request: NotificationRequest) -> str:
        """Display the request and return a notification id, or raise."""
        ...


Subscriber = Callable[[DeliveryOutcome], None]


class Subscription:
    """Handle returned by subscribe(); unsubscribe() is idempotent."""

    def __init__(self, subscribers: List[Subscriber], callback: Subscriber) -> None:
        self._subscribers = subscribers
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._callback in self._subscribers:
            self._subscribers.remove(self._callback)

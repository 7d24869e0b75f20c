"""Core humor delivery pipeline.

This module is integration-agnostic. It only relies on ports for content,
tab state, and notifications, enabling other hosts or channels without
changes here.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
import random
from typing import Callable, Deque, List, Optional, Sequence, Tuple

from core.config import HumorConfig, NotificationConfig
from core.context import build_context, new_recent_events, push_recent_event
from core.dedup import RecentHistory, select_quip
from core.errors import (
    ConditionEvaluationFailed,
    ContentStoreError,
    DeliveryFailed,
    EasterEggCheckFailed,
    HumorError,
    NoQuipsAvailable,
)
from core.models import (
    DELIVERY_METHOD_NONE,
    DELIVERY_METHOD_NOTIFICATION,
    HUMOR_LEVELS,
    TRIGGER_TYPES,
    ContextSnapshot,
    DeliveryOutcome,
    HumorTrigger,
    NotificationRequest,
    TabState,
)
from core.ports import ContentStorePort, NotifierPort, Subscriber, Subscription, TabStatePort
from core.registry import RuleRegistry
from core.rules_engine import RuleMatch, evaluate
from core.throttle import ThrottleGate

LOGGER = logging.getLogger(__name__)

EASTER_EGG_PRIORITY = 2
GENERIC_PRIORITY = 1


def _local_now() -> datetime:
    return datetime.now().astimezone()


class HumorProcessor:
    """Orchestrates matching, selection, dedup, throttling, and notifications."""

    def __init__(
        self,
        registry: RuleRegistry,
        content_store: ContentStorePort,
        notifier: NotifierPort,
        tab_state: Optional[TabStatePort] = None,
        config: Optional[HumorConfig] = None,
        notification_config: Optional[NotificationConfig] = None,
        clock: Callable[[], datetime] = _local_now,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._config = config or HumorConfig()
        self._notification_config = notification_config or NotificationConfig()
        self._registry = registry
        self._content_store = content_store
        self._notifier = notifier
        self._tab_state = tab_state
        self._clock = clock
        self._rng = rng or random.Random()
        self.set_humor_level(self._config.level)
        self._history = RecentHistory(self._config.history_size)
        self._throttle = ThrottleGate(self._config.min_interval)
        self._recent_events: Deque[str] = new_recent_events(self._config.recent_events_limit)
        self._subscribers: List[Subscriber] = []
        # Guards check-throttle -> dispatch -> record so concurrent triggers
        # cannot both pass the gate inside one interval.
        self._delivery_lock = asyncio.Lock()

    @property
    def humor_level(self) -> str:
        return self._humor_level

    @property
    def history(self) -> RecentHistory:
        return self._history

    @property
    def throttle(self) -> ThrottleGate:
        return self._throttle

    def set_humor_level(self, level: str) -> None:
        if level not in HUMOR_LEVELS:
            raise ValueError(f"Unsupported humor level: {level}")
        self._humor_level = level

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Receive every successful DeliveryOutcome until unsubscribed."""

        self._subscribers.append(callback)
        return Subscription(self._subscribers, callback)

    def check_easter_eggs(self, context: ContextSnapshot) -> Optional[RuleMatch]:
        """Return the best matching rule for a context, or None.

        Raises EasterEggCheckFailed when the engine itself errors, which is
        distinct from finding no match.
        """

        try:
            return evaluate(context, self._registry.get_all())
        except HumorError as exc:
            raise EasterEggCheckFailed(str(exc)) from exc

    async def deliver(self, trigger: HumorTrigger) -> DeliveryOutcome:
        """Run one trigger through the pipeline. Never raises."""

        now = self._clock()
        try:
            return await self._deliver(trigger, now)
        except HumorError as exc:
            LOGGER.info("No quip delivered for %s (%s): %s", trigger.type, exc.kind, exc)
            return self._failure(trigger, now, exc.kind, str(exc))
        except Exception as exc:
            LOGGER.exception("Unexpected error while delivering quip for %s", trigger.type)
            return self._failure(trigger, now, type(exc).__name__, str(exc))

    async def _deliver(self, trigger: HumorTrigger, now: datetime) -> DeliveryOutcome:
        if trigger.type not in TRIGGER_TYPES:
            LOGGER.debug("Unknown trigger type %s; only generic quips tagged with it apply", trigger.type)

        push_recent_event(self._recent_events, trigger.type)
        tab_state = self._tab_state.current_state() if self._tab_state is not None else TabState()
        context = build_context(trigger, tab_state, now, self._recent_events)

        match = self._match_context(context)
        pool, is_easter_egg = await self._choose_pool(trigger, match)
        if not pool:
            raise NoQuipsAvailable(trigger.type)
        if not is_easter_egg:
            match = None

        async with self._delivery_lock:
            quip = select_quip(pool, self._history, self._rng)
            if quip is None:
                raise NoQuipsAvailable(trigger.type)

            if not self._throttle.admit(now):
                LOGGER.debug(
                    "Throttled quip for %s (%.1fs left)",
                    trigger.type,
                    self._throttle.remaining(now).total_seconds(),
                )
                return DeliveryOutcome(
                    delivered=False,
                    quip_text=None,
                    delivery_method=DELIVERY_METHOD_NONE,
                    is_easter_egg=False,
                    timestamp=now,
                    trigger_type=trigger.type,
                )

            request = self._build_request(quip, is_easter_egg, now)
            notification_id = await self._dispatch(request)

            # History and throttle move together, with no await in between.
            self._history.add(quip)
            self._throttle.record(now)

        outcome = DeliveryOutcome(
            delivered=True,
            quip_text=quip,
            delivery_method=DELIVERY_METHOD_NOTIFICATION,
            is_easter_egg=is_easter_egg,
            timestamp=now,
            trigger_type=trigger.type,
            easter_egg_id=match.rule_id if match else None,
            matched_conditions=match.matched_conditions if match else (),
            notification_id=notification_id,
        )
        LOGGER.info(
            "Quip delivered for %s (%s)",
            trigger.type,
            f"easter egg {match.rule_id}" if match else "generic",
        )
        self._broadcast(outcome)
        return outcome

    def _match_context(self, context: ContextSnapshot) -> Optional[RuleMatch]:
        try:
            return evaluate(context, self._registry.get_all())
        except ConditionEvaluationFailed as exc:
            # A broken rule is an authoring bug; surface it and keep going
            # with the generic pool so the user still gets a quip.
            LOGGER.error("Easter egg evaluation failed: %s", exc)
            return None

    async def _choose_pool(
        self, trigger: HumorTrigger, match: Optional[RuleMatch]
    ) -> Tuple[Sequence[str], bool]:
        if match is not None:
            try:
                egg_pool = await self._content_store.get_easter_egg_quips(match.rule_type, self._humor_level)
            except ContentStoreError as exc:
                LOGGER.warning("Easter egg quips unavailable for %s: %s", match.rule_type, exc)
                egg_pool = []
            if egg_pool:
                return egg_pool, True
            LOGGER.debug(
                "Easter egg %s has no %s quips; falling back to %s",
                match.rule_id,
                self._humor_level,
                trigger.type,
            )

        try:
            quips = await self._content_store.get_generic_quips(self._humor_level, trigger.type)
        except ContentStoreError as exc:
            raise NoQuipsAvailable(trigger.type, "Generic quips unavailable") from exc
        return [quip.text for quip in quips], False

    def _build_request(self, quip: str, is_easter_egg: bool, now: datetime) -> NotificationRequest:
        config = self._notification_config
        return NotificationRequest(
            title=config.easter_egg_title if is_easter_egg else config.app_name,
            message=quip,
            priority=EASTER_EGG_PRIORITY if is_easter_egg else GENERIC_PRIORITY,
            is_easter_egg=is_easter_egg,
            timestamp=now,
        )

    async def _dispatch(self, request: NotificationRequest) -> str:
        method = type(self._notifier).__name__
        try:
            return await self._notifier.send(request)
        except DeliveryFailed:
            raise
        except Exception as exc:
            LOGGER.warning("Notifier %s rejected the quip: %s", method, exc)
            raise DeliveryFailed(method, str(exc)) from exc

    def _broadcast(self, outcome: DeliveryOutcome) -> None:
        for callback in list(self._subscribers):
            try:
                callback(outcome)
            except Exception:
                LOGGER.exception("Subscriber %r failed", callback)

    def _failure(self, trigger: HumorTrigger, now: datetime, kind: str, details: str) -> DeliveryOutcome:
        return DeliveryOutcome(
            delivered=False,
            quip_text=None,
            delivery_method=DELIVERY_METHOD_NONE,
            is_easter_egg=False,
            timestamp=now,
            trigger_type=trigger.type,
            error=kind,
            details=details,
        )

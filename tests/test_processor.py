from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import random
from typing import Optional

import pytest

from core.config import HumorConfig
from core.context import make_active_tab
from core.errors import ContentNotInitialized, EasterEggCheckFailed
from core.models import ContextSnapshot, DeliveryOutcome, GenericQuip, HumorTrigger, NotificationRequest, TabState
from core.processor import HumorProcessor
from core.registry import RuleRegistry

START = datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)


class FakeContentStore:
    def __init__(
        self,
        generic: Optional[dict[tuple[str, str], list[str]]] = None,
        easter_egg_quips: Optional[dict[tuple[str, str], list[str]]] = None,
        easter_eggs: Optional[list[dict]] = None,
    ) -> None:
        self.generic = generic or {}
        self.easter_egg_quips = easter_egg_quips or {}
        self.easter_eggs = easter_eggs or []
        self.fail_generic = False

    def get_all_easter_eggs(self) -> list[dict]:
        return list(self.easter_eggs)

    async def get_generic_quips(self, level: str, category: str) -> list[GenericQuip]:
        if self.fail_generic:
            raise ContentNotInitialized()
        return [
            GenericQuip(id=f"PA-{index}", text=text, category_tags=frozenset({category}), level=level)
            for index, text in enumerate(self.generic.get((level, category), []))
        ]

    async def get_easter_egg_quips(self, egg_type: str, level: str) -> list[str]:
        return list(self.easter_egg_quips.get((egg_type, level), []))


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[NotificationRequest] = []
        self.fail = False

    async def send(self, request: NotificationRequest) -> str:
        # Yield once so concurrent deliveries really interleave here.
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("notifications permission denied")
        self.sent.append(request)
        return f"n-{len(self.sent)}"


class FakeTabState:
    def __init__(self, state: Optional[TabState] = None) -> None:
        self.state = state or TabState()

    def current_state(self) -> TabState:
        return self.state


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


EASTER_EGGS = [
    {
        "id": "EE-001",
        "type": "42-tabs",
        "conditions": {"tab_count": 42},
        "quips": ["Don't Panic."],
        "level": "default",
        "metadata": {"difficulty": "legendary"},
    },
    {
        "id": "EE-007",
        "type": "leeroy-jenkins",
        "conditions": {"tab_count": 40},
        "quips": ["LEEROY JENKINS!"],
        "level": "mild",
        "metadata": {"difficulty": "uncommon"},
    },
]


def _make_processor(
    *,
    tab_state: Optional[TabState] = None,
    generic: Optional[dict] = None,
    easter_eggs: Optional[list[dict]] = None,
    easter_egg_quips: Optional[dict] = None,
) -> tuple[HumorProcessor, FakeContentStore, FakeNotifier, FakeTabState, FakeClock]:
    store = FakeContentStore(
        generic=generic if generic is not None else {("default", "TabClosed"): ["Tab closed. Bold."]},
        easter_egg_quips=(
            easter_egg_quips if easter_egg_quips is not None else {("42-tabs", "default"): ["Don't Panic."]}
        ),
        easter_eggs=easter_eggs if easter_eggs is not None else EASTER_EGGS,
    )
    registry = RuleRegistry(store)
    registry.load()
    notifier = FakeNotifier()
    tabs = FakeTabState(tab_state)
    clock = FakeClock()
    processor = HumorProcessor(
        registry=registry,
        content_store=store,
        notifier=notifier,
        tab_state=tabs,
        config=HumorConfig(min_interval=timedelta(seconds=5), history_size=10),
        clock=clock,
        rng=random.Random(42),
    )
    return processor, store, notifier, tabs, clock


def test_easter_egg_match_is_delivered() -> None:
    processor, _, notifier, _, _ = _make_processor(tab_state=TabState(tab_count=42, group_count=3))

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.delivered
    assert outcome.is_easter_egg
    assert outcome.quip_text == "Don't Panic."
    assert outcome.easter_egg_id == "EE-001"
    assert outcome.matched_conditions == ("tab_count",)
    assert outcome.delivery_method == "notification"
    assert notifier.sent[0].title == "Easter Egg!"
    assert notifier.sent[0].priority == 2


def test_no_match_falls_back_to_trigger_category() -> None:
    processor, _, notifier, _, _ = _make_processor(tab_state=TabState(tab_count=10))

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.delivered
    assert not outcome.is_easter_egg
    assert outcome.quip_text == "Tab closed. Bold."
    assert outcome.easter_egg_id is None
    assert notifier.sent[0].title == "Tabby"
    assert notifier.sent[0].priority == 1


def test_empty_easter_egg_pool_falls_through_to_generic() -> None:
    # EE-007 only has mild quips; the processor runs at the default level.
    processor, _, _, _, _ = _make_processor(tab_state=TabState(tab_count=40))

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.delivered
    assert not outcome.is_easter_egg
    assert outcome.quip_text == "Tab closed. Bold."
    assert outcome.matched_conditions == ()


def test_humor_level_selects_pool() -> None:
    processor, _, _, _, _ = _make_processor(
        tab_state=TabState(tab_count=40),
        easter_egg_quips={("leeroy-jenkins", "mild"): ["LEEROY JENKINS!"]},
    )
    processor.set_humor_level("mild")

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert processor.humor_level == "mild"
    assert outcome.is_easter_egg
    assert outcome.quip_text == "LEEROY JENKINS!"


def test_unknown_humor_level_is_rejected() -> None:
    processor, _, _, _, _ = _make_processor()

    with pytest.raises(ValueError):
        processor.set_humor_level("savage")
    assert processor.humor_level == "default"


def test_no_quips_available_is_reported_not_raised() -> None:
    processor, _, notifier, _, _ = _make_processor(generic={})

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabOpened")))

    assert not outcome.delivered
    assert outcome.error == "NoQuipsAvailable"
    assert outcome.delivery_method == "none"
    assert not notifier.sent


def test_content_store_failure_becomes_no_quips_available() -> None:
    processor, store, _, _, _ = _make_processor()
    store.fail_generic = True

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.error == "NoQuipsAvailable"


def test_second_delivery_inside_interval_is_throttled() -> None:
    processor, _, notifier, _, clock = _make_processor()

    async def scenario() -> tuple[DeliveryOutcome, DeliveryOutcome]:
        first = await processor.deliver(HumorTrigger(type="TabClosed"))
        clock.advance(1)
        second = await processor.deliver(HumorTrigger(type="TabClosed"))
        return first, second

    first, second = asyncio.run(scenario())

    assert first.delivered
    assert not second.delivered
    assert second.delivery_method == "none"
    assert second.error is None
    assert second.throttled
    assert len(notifier.sent) == 1
    assert len(processor.history) == 1


def test_deliveries_spaced_beyond_interval_both_succeed() -> None:
    processor, _, notifier, _, clock = _make_processor()

    async def scenario() -> list[DeliveryOutcome]:
        outcomes = [await processor.deliver(HumorTrigger(type="TabClosed"))]
        clock.advance(6)
        outcomes.append(await processor.deliver(HumorTrigger(type="TabClosed")))
        return outcomes

    outcomes = asyncio.run(scenario())

    assert [outcome.delivered for outcome in outcomes] == [True, True]
    assert len(notifier.sent) == 2


def test_concurrent_deliveries_in_one_interval_deliver_once() -> None:
    processor, _, notifier, _, _ = _make_processor()

    async def scenario() -> list[DeliveryOutcome]:
        return await asyncio.gather(
            processor.deliver(HumorTrigger(type="TabClosed")),
            processor.deliver(HumorTrigger(type="TabClosed")),
        )

    outcomes = asyncio.run(scenario())

    assert sorted(outcome.delivered for outcome in outcomes) == [False, True]
    assert len(notifier.sent) == 1


def test_dedup_prefers_quip_not_recently_shown() -> None:
    processor, _, _, _, clock = _make_processor(generic={("default", "TabClosed"): ["X", "Y"]})

    async def scenario() -> list[str]:
        texts = []
        for _ in range(2):
            outcome = await processor.deliver(HumorTrigger(type="TabClosed"))
            texts.append(outcome.quip_text)
            clock.advance(10)
        return texts

    texts = asyncio.run(scenario())

    assert sorted(texts) == ["X", "Y"]


def test_notifier_failure_does_not_consume_throttle_or_history() -> None:
    processor, _, notifier, _, clock = _make_processor()
    notifier.fail = True

    async def scenario() -> tuple[DeliveryOutcome, DeliveryOutcome]:
        failed = await processor.deliver(HumorTrigger(type="TabClosed"))
        notifier.fail = False
        clock.advance(1)
        retried = await processor.deliver(HumorTrigger(type="TabClosed"))
        return failed, retried

    failed, retried = asyncio.run(scenario())

    assert not failed.delivered
    assert failed.error == "DeliveryFailed"
    assert retried.delivered
    assert processor.history.items() == ["Tab closed. Bold."]


def test_subscribers_receive_successful_deliveries_only() -> None:
    processor, _, _, _, clock = _make_processor()
    received: list[DeliveryOutcome] = []
    subscription = processor.subscribe(received.append)

    async def scenario() -> None:
        await processor.deliver(HumorTrigger(type="TabClosed"))
        clock.advance(1)
        await processor.deliver(HumorTrigger(type="TabClosed"))
        await processor.deliver(HumorTrigger(type="TabOpened"))

    asyncio.run(scenario())

    assert len(received) == 1
    assert received[0].delivered

    subscription.unsubscribe()
    subscription.unsubscribe()
    clock.advance(10)
    asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))
    assert len(received) == 1
    assert not subscription.active


def test_failing_subscriber_does_not_break_delivery() -> None:
    processor, _, _, _, _ = _make_processor()
    received: list[DeliveryOutcome] = []

    def explode(outcome: DeliveryOutcome) -> None:
        raise RuntimeError("ui gone")

    processor.subscribe(explode)
    processor.subscribe(received.append)

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.delivered
    assert received == [outcome]


def test_malformed_regex_rule_falls_back_to_generic() -> None:
    broken = {
        "id": "EE-BAD",
        "type": "broken",
        "conditions": {"domain_regex": "github(\\.com"},
        "quips": ["never"],
        "level": "default",
        "metadata": {"difficulty": "legendary"},
    }
    tab = make_active_tab("https://github.com/org/repo", "Pull requests")
    processor, _, _, _, _ = _make_processor(
        tab_state=TabState(tab_count=3, active_tab=tab),
        easter_eggs=[broken],
        easter_egg_quips={("broken", "default"): ["never"]},
    )

    outcome = asyncio.run(processor.deliver(HumorTrigger(type="TabClosed")))

    assert outcome.delivered
    assert not outcome.is_easter_egg
    context = ContextSnapshot(tab_count=3, active_tab=tab, current_hour=14, recent_events=(), group_count=0)
    with pytest.raises(EasterEggCheckFailed):
        processor.check_easter_eggs(context)


def test_check_easter_eggs_returns_match_or_none() -> None:
    processor, _, _, _, _ = _make_processor()
    hit = ContextSnapshot(tab_count=42, active_tab=None, current_hour=14, recent_events=(), group_count=3)
    miss = ContextSnapshot(tab_count=10, active_tab=None, current_hour=14, recent_events=(), group_count=3)

    match = processor.check_easter_eggs(hit)

    assert match is not None
    assert match.rule_id == "EE-001"
    assert processor.check_easter_eggs(miss) is None


def test_configured_humor_level_is_validated() -> None:
    store = FakeContentStore()

    with pytest.raises(ValueError):
        HumorProcessor(
            registry=RuleRegistry(store),
            content_store=store,
            notifier=FakeNotifier(),
            config=HumorConfig(level="Mild"),
        )

    processor = HumorProcessor(
        registry=RuleRegistry(store),
        content_store=store,
        notifier=FakeNotifier(),
        config=HumorConfig(level="intense"),
    )
    assert processor.humor_level == "intense"

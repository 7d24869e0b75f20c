from __future__ import annotations

import random

import pytest

from core.dedup import RecentHistory, select_quip


def test_history_evicts_oldest_past_capacity() -> None:
    history = RecentHistory(capacity=3)
    for text in ["a", "b", "c", "d"]:
        history.add(text)

    assert history.items() == ["b", "c", "d"]
    assert "a" not in history
    assert "d" in history
    assert len(history) == 3


def test_readding_refreshes_recency() -> None:
    history = RecentHistory(capacity=3)
    for text in ["a", "b", "a", "c", "d"]:
        history.add(text)

    assert history.items() == ["a", "c", "d"]
    assert "b" not in history


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RecentHistory(capacity=0)


def test_select_prefers_quips_not_recently_shown() -> None:
    history = RecentHistory()
    history.add("X")
    rng = random.Random(7)

    picks = {select_quip(["X", "Y"], history, rng) for _ in range(25)}

    assert picks == {"Y"}


def test_select_falls_back_to_full_pool_when_all_recent() -> None:
    history = RecentHistory()
    history.add("X")

    assert select_quip(["X"], history, random.Random(1)) == "X"


def test_select_empty_pool_returns_none() -> None:
    assert select_quip([], RecentHistory()) is None


def test_select_does_not_touch_history() -> None:
    history = RecentHistory()

    select_quip(["A", "B"], history, random.Random(3))

    assert len(history) == 0


def test_oldest_becomes_eligible_after_capacity_plus_one() -> None:
    history = RecentHistory(capacity=10)
    texts = [f"quip-{index}" for index in range(11)]
    for text in texts:
        history.add(text)

    assert texts[0] not in history
    assert select_quip([texts[0], texts[5]], history, random.Random(0)) == texts[0]

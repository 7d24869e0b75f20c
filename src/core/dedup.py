"""Quip selection with bounded recent-delivery deduplication (core domain)."""

from __future__ import annotations

from collections import deque
import random
from typing import Deque, List, Optional, Sequence, Set


class RecentHistory:
    """Bounded FIFO of recently delivered quip texts.

    The deque keeps insertion order for eviction and the set mirrors it for
    O(1) membership checks; both change together in add().
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity <= 0:
            raise ValueError("History capacity must be positive")
        self._capacity = capacity
        self._order: Deque[str] = deque()
        self._members: Set[str] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, text: str) -> None:
        if text in self._members:
            # Refresh recency instead of storing the text twice.
            self._order.remove(text)
        self._order.append(text)
        self._members.add(text)
        while len(self._order) > self._capacity:
            oldest = self._order.popleft()
            self._members.discard(oldest)

    def items(self) -> List[str]:
        """Texts from oldest to newest."""

        return list(self._order)

    def __contains__(self, text: object) -> bool:
        return text in self._members

    def __len__(self) -> int:
        return len(self._order)


def select_quip(
    pool: Sequence[str],
    history: RecentHistory,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """Pick one quip uniformly, preferring ones not shown recently.

    When every candidate was shown recently, pick from the full pool:
    repeating beats silence. Returns None only for an empty pool. The
    history is not touched here; the caller records a text after delivery.
    """

    if not pool:
        return None
    chooser = rng or random
    fresh = [quip for quip in pool if quip not in history]
    return chooser.choice(fresh or list(pool))

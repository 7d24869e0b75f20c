"""Minimum-interval admission control between deliveries."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


class ThrottleGate:
    """Admits a delivery only when min_interval has passed since the last one.

    admit() is a pure check. record() is called by the orchestrator only
    after the notifier accepted the message, so a failed dispatch does not
    consume the window.
    """

    def __init__(self, min_interval: timedelta) -> None:
        self._min_interval = min_interval
        self._last_delivery: Optional[datetime] = None

    @property
    def min_interval(self) -> timedelta:
        return self._min_interval

    @property
    def last_delivery(self) -> Optional[datetime]:
        return self._last_delivery

    def admit(self, now: datetime) -> bool:
        if self._last_delivery is None:
            return True
        return now - self._last_delivery >= self._min_interval

    def remaining(self, now: datetime) -> timedelta:
        if self._last_delivery is None:
            return timedelta(0)
        return max(timedelta(0), self._min_interval - (now - self._last_delivery))

    def record(self, now: datetime) -> None:
        self._last_delivery = now

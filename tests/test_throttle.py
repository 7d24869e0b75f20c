from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.throttle import ThrottleGate

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_first_attempt_is_admitted() -> None:
    gate = ThrottleGate(timedelta(seconds=5))

    assert gate.admit(START)
    assert gate.remaining(START) == timedelta(0)


def test_admit_does_not_consume_window() -> None:
    gate = ThrottleGate(timedelta(seconds=5))

    assert gate.admit(START)
    assert gate.admit(START + timedelta(seconds=1))
    assert gate.last_delivery is None


def test_window_applies_after_record() -> None:
    gate = ThrottleGate(timedelta(seconds=5))
    gate.record(START)

    assert not gate.admit(START + timedelta(seconds=4.9))
    assert gate.remaining(START + timedelta(seconds=2)) == timedelta(seconds=3)
    assert gate.admit(START + timedelta(seconds=5))
    assert gate.admit(START + timedelta(seconds=60))

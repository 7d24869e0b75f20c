"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class HumorConfig:
    """Delivery policy settings for the humor pipeline."""

    level: str = "default"
    min_interval: timedelta = timedelta(seconds=5)
    history_size: int = 10
    recent_events_limit: int = 10


@dataclass(frozen=True)
class NotificationConfig:
    """Notification settings consumed by the orchestrator and notifier adapters."""

    app_name: str = "Tabby"
    easter_egg_title: str = "Easter Egg!"

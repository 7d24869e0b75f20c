"""Typed errors raised inside the core.

The orchestrator converts every one of these into a DeliveryOutcome, so a
humor delivery that cannot complete never escapes to the host feature that
triggered it.
"""

from __future__ import annotations

from typing import Iterable, Optional


class HumorError(Exception):
    """Base class for all core humor errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class NoRulesRegistered(HumorError):
    """The content store yielded zero easter-egg rules."""


class NoQuipsAvailable(HumorError):
    """Neither the easter-egg pool nor the generic pool had anything to show."""

    def __init__(self, trigger_type: str, details: str = "No quips found for trigger") -> None:
        super().__init__(f"{details}: {trigger_type}")
        self.trigger_type = trigger_type


class ConditionEvaluationFailed(HumorError):
    """A predicate could not be evaluated (e.g. malformed domain regex)."""

    def __init__(self, rule_id: str, condition_name: str, details: str) -> None:
        super().__init__(f"Rule {rule_id}: {condition_name} failed: {details}")
        self.rule_id = rule_id
        self.condition_name = condition_name


class DuplicateRuleId(HumorError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Easter egg with id {rule_id} already registered")
        self.rule_id = rule_id


class InvalidConditions(HumorError):
    def __init__(self, rule_id: Optional[str], violations: Iterable[str]) -> None:
        self.rule_id = rule_id
        self.violations = list(violations)
        super().__init__(f"Rule {rule_id}: invalid conditions ({'; '.join(self.violations)})")


class DeliveryFailed(HumorError):
    """The notification sink rejected the message."""

    def __init__(self, delivery_method: str, details: str) -> None:
        super().__init__(f"{delivery_method}: {details}")
        self.delivery_method = delivery_method


class EasterEggCheckFailed(HumorError):
    """Invoking the condition engine failed, as opposed to finding no match."""


class ContentStoreError(HumorError):
    """Base class for content store failures."""


class ContentNotInitialized(ContentStoreError):
    def __init__(self) -> None:
        super().__init__("Content store not loaded. Call load() first.")


class ContentSchemaError(ContentStoreError):
    def __init__(self, source: str, violations: Iterable[str]) -> None:
        self.source = source
        self.violations = list(violations)
        super().__init__(f"{source}: {'; '.join(self.violations)}")

"""Easter-egg rule registry.

Holds the priority-sorted rule list used by the condition engine plus an
id-keyed lookup map for duplicate detection.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from core.errors import DuplicateRuleId, InvalidConditions, NoRulesRegistered
from core.ports import ContentStorePort
from core.rules_engine import EasterEggRule, parse_conditions

LOGGER = logging.getLogger(__name__)

# Priority is derived from the rarity tier rather than authored per rule.
DIFFICULTY_PRIORITIES = {
    "legendary": 100,
    "rare": 75,
    "uncommon": 50,
    "common": 25,
}
DEFAULT_DIFFICULTY = "common"


def priority_for_difficulty(difficulty: Optional[str], rule_id: Optional[str] = None) -> int:
    tier = difficulty or DEFAULT_DIFFICULTY
    if not isinstance(tier, str) or tier not in DIFFICULTY_PRIORITIES:
        raise InvalidConditions(rule_id, [f"unknown difficulty {tier!r}"])
    return DIFFICULTY_PRIORITIES[tier]


def build_rule(raw: Mapping[str, Any]) -> EasterEggRule:
    """Build an EasterEggRule from a content-store definition."""

    rule_id = raw.get("id")
    if not rule_id or not raw.get("type"):
        raise InvalidConditions(rule_id, ["rule requires id and type"])
    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise InvalidConditions(rule_id, ["metadata must be an object"])
    difficulty = metadata.get("difficulty") or DEFAULT_DIFFICULTY
    return EasterEggRule(
        id=rule_id,
        type=raw["type"],
        priority=priority_for_difficulty(difficulty, rule_id),
        conditions=parse_conditions(raw.get("conditions"), rule_id),
        difficulty=difficulty,
        niche_reference=metadata.get("niche_reference"),
    )


def _warn_on_malformed_regex(rule: EasterEggRule) -> None:
    pattern = rule.conditions.domain_regex
    if pattern is None:
        return
    try:
        re.compile(pattern)
    except re.error as exc:
        # Kept registered: evaluation will raise ConditionEvaluationFailed.
        LOGGER.error("Rule %s has a malformed domain_regex %r: %s", rule.id, pattern, exc)


class RuleRegistry:
    """Ordered and indexed set of easter-egg rules."""

    def __init__(self, content_store: ContentStorePort) -> None:
        self._content_store = content_store
        self._rules: List[EasterEggRule] = []
        self._by_id: Dict[str, EasterEggRule] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> int:
        """Populate the registry from the content store.

        Definitions repeated across intensity tiers share one id and are
        registered once. Returns the number of rules registered.
        """

        definitions = self._content_store.get_all_easter_eggs()
        for raw in definitions:
            if raw.get("id") in self._by_id:
                continue
            try:
                self.register(build_rule(raw))
            except InvalidConditions:
                LOGGER.exception("Skipping easter egg %s with invalid conditions", raw.get("id"))

        if not self._rules:
            raise NoRulesRegistered("No easter eggs loaded from content store")

        self._loaded = True
        LOGGER.info("%s easter egg rules are registered", len(self._rules))
        return len(self._rules)

    def register(self, rule: EasterEggRule) -> None:
        if rule.id in self._by_id:
            raise DuplicateRuleId(rule.id)
        if not rule.conditions.present():
            raise InvalidConditions(rule.id, ["Easter egg must have at least one condition"])
        _warn_on_malformed_regex(rule)

        self._by_id[rule.id] = rule
        self._rules.append(rule)
        # list.sort is stable, so equal priorities keep registration order.
        self._rules.sort(key=lambda item: item.priority, reverse=True)

    def get(self, rule_id: str) -> Optional[EasterEggRule]:
        return self._by_id.get(rule_id)

    def get_all(self) -> List[EasterEggRule]:
        return list(self._rules)

    def clear(self) -> None:
        self._rules = []
        self._by_id.clear()
        self._loaded = False

    def __len__(self) -> int:
        return len(self._rules)

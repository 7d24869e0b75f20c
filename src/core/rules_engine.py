"""Easter-egg condition parsing and evaluation (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import ConditionEvaluationFailed, InvalidConditions
from core.models import ContextSnapshot

CONDITION_KINDS = ("tab_count", "domain_regex", "hour_range", "title_contains", "group_count")


@dataclass(frozen=True)
class NumberCondition:
    """Range and divisibility check against an integer field.

    All present bounds are AND-combined. An exact value is expressed as
    min == max.
    """

    min: Optional[int] = None
    max: Optional[int] = None
    multiple_of: Optional[int] = None


@dataclass(frozen=True)
class HourRange:
    start: int
    end: int


@dataclass(frozen=True)
class Conditions:
    """AND-combined predicate set; an absent predicate always holds."""

    tab_count: Optional[NumberCondition] = None
    domain_regex: Optional[str] = None
    hour_range: Optional[HourRange] = None
    title_contains: Optional[str] = None
    group_count: Optional[NumberCondition] = None

    def present(self) -> List[str]:
        return [kind for kind in CONDITION_KINDS if getattr(self, kind) is not None]


@dataclass(frozen=True)
class EasterEggRule:
    """Registered easter egg, ordered by priority inside the registry."""

    id: str
    type: str
    priority: int
    conditions: Conditions
    difficulty: str = "common"
    niche_reference: Optional[str] = None


@dataclass(frozen=True)
class RuleMatch:
    """A single rule match with the predicate kinds that held."""

    rule_id: str
    rule_type: str
    priority: int
    matched_conditions: Tuple[str, ...]


def _as_int(value: Any, label: str, violations: List[str]) -> Optional[int]:
    # bool is an int subclass but never a meaningful count.
    if isinstance(value, bool) or not isinstance(value, int):
        violations.append(f"{label} must be an integer, got {value!r}")
        return None
    return value


def _parse_number_condition(
    raw: Union[int, Mapping[str, Any]], label: str, violations: List[str]
) -> Optional[NumberCondition]:
    if isinstance(raw, Mapping):
        unknown = set(raw) - {"min", "max", "multiple_of"}
        if unknown:
            violations.append(f"{label} has unknown keys: {', '.join(sorted(unknown))}")
        if not raw:
            violations.append(f"{label} must set at least one of min, max, multiple_of")
            return None
        bounds = {
            key: _as_int(raw[key], f"{label}.{key}", violations)
            for key in ("min", "max", "multiple_of")
            if key in raw
        }
        multiple_of = bounds.get("multiple_of")
        if multiple_of is not None and multiple_of <= 0:
            violations.append(f"{label}.multiple_of must be positive")
        low, high = bounds.get("min"), bounds.get("max")
        if low is not None and high is not None and low > high:
            violations.append(f"{label}.min is greater than {label}.max")
        return NumberCondition(min=low, max=high, multiple_of=multiple_of)

    exact = _as_int(raw, label, violations)
    if exact is None:
        return None
    return NumberCondition(min=exact, max=exact)


def _parse_hour_range(raw: Any, violations: List[str]) -> Optional[HourRange]:
    if not isinstance(raw, Mapping) or "start" not in raw or "end" not in raw:
        violations.append("hour_range requires start and end")
        return None
    start = _as_int(raw["start"], "hour_range.start", violations)
    end = _as_int(raw["end"], "hour_range.end", violations)
    if start is None or end is None:
        return None
    for label, hour in (("start", start), ("end", end)):
        if not 0 <= hour <= 23:
            violations.append(f"hour_range.{label} must be within 0-23, got {hour}")
    return HourRange(start=start, end=end)


def _parse_text(raw: Any, label: str, violations: List[str]) -> Optional[str]:
    if not isinstance(raw, str) or not raw:
        violations.append(f"{label} must be a non-empty string")
        return None
    return raw


def parse_conditions(raw: Optional[Mapping[str, Any]], rule_id: Optional[str] = None) -> Conditions:
    """Normalize a raw conditions mapping into a Conditions value.

    Rejects empty sets and unknown keys. Domain regex syntax is NOT checked
    here; a malformed pattern surfaces from evaluate().
    """

    if not raw:
        raise InvalidConditions(rule_id, ["Easter egg must have at least one condition"])
    if not isinstance(raw, Mapping):
        raise InvalidConditions(rule_id, ["conditions must be an object"])

    violations: List[str] = []
    unknown = set(raw) - set(CONDITION_KINDS)
    if unknown:
        violations.append(f"unknown condition(s): {', '.join(sorted(unknown))}")

    parsed: dict = {}
    for kind in ("tab_count", "group_count"):
        if kind in raw:
            parsed[kind] = _parse_number_condition(raw[kind], kind, violations)
    if "hour_range" in raw:
        parsed["hour_range"] = _parse_hour_range(raw["hour_range"], violations)
    for kind in ("domain_regex", "title_contains"):
        if kind in raw:
            parsed[kind] = _parse_text(raw[kind], kind, violations)

    if violations:
        raise InvalidConditions(rule_id, violations)

    conditions = Conditions(**parsed)
    if not conditions.present():
        raise InvalidConditions(rule_id, ["Easter egg must have at least one condition"])
    return conditions


def evaluate_number_condition(actual: int, condition: NumberCondition) -> bool:
    """Return True when actual satisfies every bound in condition.

    Zero is never a multiple: multiple_of uses the positive sense.
    """

    if condition.min is not None and actual < condition.min:
        return False
    if condition.max is not None and actual > condition.max:
        return False
    if condition.multiple_of is not None:
        if actual <= 0 or actual % condition.multiple_of != 0:
            return False
    return True


def evaluate_hour_range(current_hour: int, hour_range: HourRange) -> bool:
    """Inclusive hour check; start > end wraps past midnight."""

    start, end = hour_range.start, hour_range.end
    if start <= end:
        return start <= current_hour <= end
    return current_hour >= start or current_hour <= end


def _domain_matches(rule_id: str, pattern: str, domain: str) -> bool:
    try:
        compiled = re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise ConditionEvaluationFailed(rule_id, "domain_regex", f"invalid pattern {pattern!r}: {exc}") from exc
    return compiled.search(domain) is not None


def evaluate_rule(rule: EasterEggRule, context: ContextSnapshot) -> Optional[RuleMatch]:
    """Evaluate every present predicate of one rule against the context.

    Domain and title predicates only constrain when an active tab exists;
    otherwise they hold without being reported as matched.
    """

    conditions = rule.conditions
    matched: List[str] = []

    if conditions.tab_count is not None:
        if not evaluate_number_condition(context.tab_count, conditions.tab_count):
            return None
        matched.append("tab_count")

    if conditions.domain_regex is not None and context.active_tab is not None:
        if not _domain_matches(rule.id, conditions.domain_regex, context.active_tab.domain):
            return None
        matched.append("domain_regex")

    if conditions.hour_range is not None:
        if not evaluate_hour_range(context.current_hour, conditions.hour_range):
            return None
        matched.append("hour_range")

    if conditions.title_contains is not None and context.active_tab is not None:
        if conditions.title_contains.lower() not in context.active_tab.title.lower():
            return None
        matched.append("title_contains")

    if conditions.group_count is not None:
        if not evaluate_number_condition(context.group_count, conditions.group_count):
            return None
        matched.append("group_count")

    return RuleMatch(
        rule_id=rule.id,
        rule_type=rule.type,
        priority=rule.priority,
        matched_conditions=tuple(matched),
    )


def evaluate(context: ContextSnapshot, rules: Iterable[EasterEggRule]) -> Optional[RuleMatch]:
    """Return the first fully-matching rule, or None.

    Rules must already be in evaluation order (priority descending, ties in
    registration order), which is how RuleRegistry.get_all() hands them out.
    Raises ConditionEvaluationFailed instead of skipping a broken rule.
    """

    for rule in rules:
        match = evaluate_rule(rule, context)
        if match is not None:
            return match
    return None

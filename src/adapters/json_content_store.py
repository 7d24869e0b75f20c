"""JSON file content store adapter.

Implements the core ContentStorePort from two JSON catalogs: generic quips
and easter eggs. Data is validated once on load and cached in memory.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any, List, Mapping

from core.errors import ContentNotInitialized, ContentSchemaError
from core.models import HUMOR_LEVELS, GenericQuip

LOGGER = logging.getLogger(__name__)

QUIP_FIELDS = ("id", "text", "trigger_types", "level")
EASTER_EGG_FIELDS = ("id", "type", "conditions", "quips", "level")


def _read_json_array(path: str) -> list:
    if not os.path.exists(path):
        raise ContentSchemaError(path, ["file not found"])
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ContentSchemaError(path, [f"invalid JSON: {exc}"]) from exc
    if not isinstance(data, list):
        raise ContentSchemaError(path, ["root must be an array"])
    return data


QUIP_LIST_FIELDS = ("trigger_types",)
EASTER_EGG_LIST_FIELDS = ("quips",)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) and item for item in value)


def _entry_violations(entry: Mapping[str, Any], required: tuple, list_fields: tuple) -> List[str]:
    label = entry.get("id")
    missing = [name for name in required if not entry.get(name)]
    if missing:
        return [f"entry {label} missing {', '.join(missing)}"]

    violations: List[str] = []
    for name in required:
        value = entry[name]
        if name in list_fields:
            if not _is_string_list(value):
                violations.append(f"entry {label} field {name} must be a list of strings")
        elif name == "conditions":
            if not isinstance(value, Mapping):
                violations.append(f"entry {label} field conditions must be an object")
        elif not isinstance(value, str):
            violations.append(f"entry {label} field {name} must be a string")
    if "metadata" in entry and entry["metadata"] is not None and not isinstance(entry["metadata"], Mapping):
        violations.append(f"entry {label} field metadata must be an object")
    if isinstance(entry["level"], str) and entry["level"] not in HUMOR_LEVELS:
        violations.append(f"entry {label} has unknown level {entry['level']!r}")
    return violations


def _validate_entries(path: str, entries: list, required: tuple, list_fields: tuple) -> None:
    violations: List[str] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            violations.append(f"entry {index} is not an object")
            continue
        violations.extend(_entry_violations(entry, required, list_fields))
    if violations:
        raise ContentSchemaError(path, violations)



class JsonContentStore:
    """Quip and easter egg catalog backed by JSON files."""

    def __init__(self, quips_path: str, easter_eggs_path: str) -> None:
        self._quips_path = quips_path
        self._easter_eggs_path = easter_eggs_path
        self._quips: List[GenericQuip] = []
        self._easter_eggs: List[Mapping[str, Any]] = []
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Read, validate, and cache both catalogs."""

        raw_quips = _read_json_array(self._quips_path)
        _validate_entries(self._quips_path, raw_quips, QUIP_FIELDS, QUIP_LIST_FIELDS)
        raw_eggs = _read_json_array(self._easter_eggs_path)
        _validate_entries(self._easter_eggs_path, raw_eggs, EASTER_EGG_FIELDS, EASTER_EGG_LIST_FIELDS)

        self._quips = [
            GenericQuip(
                id=entry["id"],
                text=entry["text"],
                category_tags=frozenset(entry["trigger_types"]),
                level=entry["level"],
            )
            for entry in raw_quips
        ]
        self._easter_eggs = raw_eggs
        self._loaded = True
        LOGGER.info(
            "Loaded %s quips and %s easter eggs",
            len(self._quips),
            len(self._easter_eggs),
        )

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise ContentNotInitialized()

    def get_all_easter_eggs(self) -> List[Mapping[str, Any]]:
        """Return raw easter egg definitions across all levels."""

        self._require_loaded()
        # Deep copy keeps callers from mutating the cache.
        return copy.deepcopy(self._easter_eggs)

    async def get_generic_quips(self, level: str, category: str) -> List[GenericQuip]:
        self._require_loaded()
        return [quip for quip in self._quips if quip.level == level and category in quip.category_tags]

    async def get_easter_egg_quips(self, egg_type: str, level: str) -> List[str]:
        self._require_loaded()
        pool: List[str] = []
        for egg in self._easter_eggs:
            if egg["type"] == egg_type and egg["level"] == level:
                pool.extend(egg["quips"])
        return pool

    def get_available_trigger_types(self) -> List[str]:
        self._require_loaded()
        return sorted({tag for quip in self._quips for tag in quip.category_tags})

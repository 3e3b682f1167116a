"""Sorting and free-text filtering for the listing screens."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

ASCENDING = "ascending"
DESCENDING = "descending"


@dataclass(frozen=True)
class SortConfig:
    key: Optional[str] = None
    direction: Optional[str] = None


def request_sort(config: SortConfig, key: str) -> SortConfig:
    """Next sort state after a click on column ``key``.

    Only a repeat click on an ascending column flips it; everything else
    (including a third click) lands on ascending.
    """
    if config.key == key and config.direction == ASCENDING:
        return SortConfig(key, DESCENDING)
    return SortConfig(key, ASCENDING)


def parse_sort(key: Optional[str], direction: Optional[str]) -> SortConfig:
    if not key:
        return SortConfig()
    return SortConfig(key, DESCENDING if direction == DESCENDING else ASCENDING)


def _compare_raw(a: Any, b: Any) -> int:
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        sa, sb = display_string(a), display_string(b)
        return (sa > sb) - (sa < sb)


def sort_records(records: List[Dict[str, Any]], config: SortConfig) -> List[Dict[str, Any]]:
    """Return a sorted copy; a missing or ``None`` value compares equal to anything."""
    out = list(records)
    if config.key is None:
        return out
    key = config.key
    sign = -1 if config.direction == DESCENDING else 1

    def cmp(ra: Dict[str, Any], rb: Dict[str, Any]) -> int:
        a, b = ra.get(key), rb.get(key)
        if a is None or b is None:
            return 0
        return sign * _compare_raw(a, b)

    out.sort(key=cmp_to_key(cmp))
    return out


def display_string(value: Any) -> str:
    """String form of a field value as the filter sees it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else display_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def filter_records(records: List[Dict[str, Any]], text: Optional[str]) -> List[Dict[str, Any]]:
    needle = (text or "").lower()
    return [
        r for r in records
        if any(needle in display_string(v).lower() for v in r.values())
    ]


def apply_listing(records: List[Dict[str, Any]], config: SortConfig, text: Optional[str]) -> List[Dict[str, Any]]:
    return filter_records(sort_records(records, config), text)

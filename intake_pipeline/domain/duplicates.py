"""
Duplicate resolver: composite identity keys and collision detection.

A row's composite key joins the string forms of its key field values with
the ASCII unit separator (0x1F), which does not occur in normal cell text,
so ("a|b", "c") and ("a", "b|c") never collide. Missing and None values
render as "".

ZERO I/O.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

KEY_SEPARATOR = "\x1f"

# Groups carried in a report's samples
DEFAULT_SAMPLE_LIMIT = 10


def _render(value: Any) -> str:
    return "" if value is None else str(value)


def compute_key(row: Mapping[str, Any], key_fields: Sequence[str]) -> str:
    """Composite key of ``row`` under ``key_fields``."""
    return KEY_SEPARATOR.join(_render(row.get(f)) for f in key_fields)


def has_duplicates(rows: Iterable[Mapping[str, Any]], key_fields: Sequence[str]) -> bool:
    """True iff two rows share a composite key. Single pass, order independent."""
    seen: set[str] = set()
    for row in rows:
        key = compute_key(row, key_fields)
        if key in seen:
            return True
        seen.add(key)
    return False


@dataclass(frozen=True)
class DuplicateGroup:
    """Rows sharing one composite key; positions are 1-based."""

    key_values: tuple[str, ...]
    positions: tuple[int, ...]

    @property
    def display_key(self) -> str:
        return "|".join(self.key_values)


@dataclass(frozen=True)
class DuplicateReport:
    """
    Result of a duplicate scan.

    ``duplicate_count`` counts rows whose key was already taken by an
    earlier row. ``samples`` holds at most the first ``sample_limit``
    groups in order of first occurrence.
    """

    key_fields: tuple[str, ...]
    total_rows: int
    duplicate_count: int
    group_count: int
    samples: tuple[DuplicateGroup, ...]

    @property
    def has_duplicates(self) -> bool:
        return self.duplicate_count > 0


def find_duplicates(
    rows: Sequence[Mapping[str, Any]],
    key_fields: Sequence[str],
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> DuplicateReport:
    """Group rows by composite key and report the colliding groups."""
    positions_by_key: dict[str, list[int]] = defaultdict(list)
    for position, row in enumerate(rows, start=1):
        positions_by_key[compute_key(row, key_fields)].append(position)

    groups = [
        DuplicateGroup(tuple(key.split(KEY_SEPARATOR)) if key_fields else (), tuple(positions))
        for key, positions in positions_by_key.items()
        if len(positions) > 1
    ]
    return DuplicateReport(
        key_fields=tuple(key_fields),
        total_rows=len(rows),
        duplicate_count=sum(len(g.positions) - 1 for g in groups),
        group_count=len(groups),
        samples=tuple(groups[:sample_limit]),
    )


def _populated(rows: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> bool:
    for row in rows:
        for f in fields:
            value = row.get(f)
            if value is None or (isinstance(value, str) and not value.strip()):
                return False
    return True


def suggest_key_fields(
    rows: Sequence[Mapping[str, Any]],
    candidates: Sequence[Sequence[str]],
    default: Sequence[str],
) -> tuple[str, ...]:
    """
    Propose key fields for a batch.

    The first candidate whose fields carry a value in every row wins;
    otherwise the entity default.
    """
    if rows:
        for candidate in candidates:
            if candidate and _populated(rows, candidate):
                return tuple(candidate)
    return tuple(default)

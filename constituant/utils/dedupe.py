"""
Deduplication of records fetched within a single source run.

Responsibility: Drop records sharing a natural key and report how many were dropped
"""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


def dedupe_by_key(
    records: Iterable[T],
    key_fn: Callable[[T], Optional[Hashable]],
    keep: str = "first",
) -> Tuple[List[T], int]:
    """
    Remove records whose key was already seen.

    Records whose key is None are dropped and counted as removed.
    Output order follows the first appearance of each key.

    Args:
        records: Records to deduplicate.
        key_fn: Computes the natural key of a record.
        keep: "first" keeps the earliest record for a key, "last" the latest.

    Returns:
        Tuple of (unique_records, removed_count).
    """
    if keep not in ("first", "last"):
        raise ValueError("keep must be 'first' or 'last'")

    seen: dict[Hashable, T] = {}
    removed = 0

    for record in records:
        key = key_fn(record)
        if key is None:
            removed += 1
            continue
        if key in seen:
            removed += 1
            if keep == "last":
                seen[key] = record
            continue
        seen[key] = record

    return list(seen.values()), removed

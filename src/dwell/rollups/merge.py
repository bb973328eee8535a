"""Merge engine for stores.

``merge_stores(base, incoming)`` combines two wire-form stores key-wise:

- domain only in ``incoming``: inserted unchanged
- domain only in ``base``: kept unchanged
- domain in both: ``totalTime`` summed, ``sessions`` concatenated
  (base first), each bucket map combined by key union with summed values

Bucket totals are plain integer sums, so merging is commutative and
associative for every bucket value and ``merge_stores(x, {}) == x``.
Session concatenation is associative but depends on argument order;
only the multiset of sessions is order-independent.
"""

from __future__ import annotations

import copy
from typing import Any

from ..storage.records import BUCKET_FIELDS, StoreData

__all__ = [
    "merge_buckets",
    "merge_records",
    "merge_stores",
]


def merge_buckets(base: dict[str, int] | None, incoming: dict[str, int] | None) -> dict[str, int]:
    """Key union of two bucket maps, summing shared keys."""
    merged = dict(base or {})
    for key, seconds in (incoming or {}).items():
        merged[key] = merged.get(key, 0) + seconds
    return merged


def merge_records(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Combine two records of the same domain.

    Fields other than the totals, sessions and buckets are taken from
    ``base`` and completed from ``incoming``.
    """
    merged = copy.deepcopy(incoming)
    merged.update(copy.deepcopy(base))

    merged["totalTime"] = base.get("totalTime", 0) + incoming.get("totalTime", 0)
    merged["sessions"] = copy.deepcopy(list(base.get("sessions") or [])) + copy.deepcopy(
        list(incoming.get("sessions") or [])
    )
    for bucket_field in BUCKET_FIELDS:
        merged[bucket_field] = merge_buckets(base.get(bucket_field), incoming.get(bucket_field))

    return merged


def merge_stores(base: StoreData, incoming: StoreData) -> StoreData:
    """Merge ``incoming`` into a copy of ``base``.

    Neither argument is modified.

    Example
    -------
    >>> base = {"example.com": {"totalTime": 50, "dailyData": {"2024-01-01": 50}}}
    >>> incoming = {"example.com": {"totalTime": 100, "dailyData": {"2024-01-01": 100}}}
    >>> merge_stores(base, incoming)["example.com"]["totalTime"]
    150
    """
    merged: StoreData = copy.deepcopy(base)

    for domain, record in incoming.items():
        if domain in merged:
            merged[domain] = merge_records(merged[domain], record)
        else:
            merged[domain] = copy.deepcopy(record)

    return merged

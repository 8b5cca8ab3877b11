"""Combine result series of several queries into one."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

CategoryValue = Dict[str, Any]
MergedIndex = Dict[Any, CategoryValue]


def merge_sum(entry: CategoryValue, index: MergedIndex, key_property: str) -> None:
    """Merge ``entry`` into ``index``, adding ``result`` when the key exists.

    The first entry seen for a key is stored (as a shallow copy, the caller's
    series is left alone); later entries only contribute their ``result``.
    """
    key = entry.get(key_property)
    existing = index.get(key)
    if existing is not None:
        existing["result"] = existing.get("result", 0) + entry.get("result", 0)
    else:
        index[key] = dict(entry)


def flatten_merged(index: MergedIndex, strip_property: Optional[str] = None) -> List[CategoryValue]:
    """Return the merged values in first-seen order.

    When ``strip_property`` is given, that field is dropped from every value.
    """
    values = list(index.values())
    if strip_property is not None:
        for value in values:
            value.pop(strip_property, None)
    return values


def is_interval_series(series: Sequence[Any]) -> bool:
    return bool(series) and isinstance(series[0], dict) and "timeframe" in series[0]


def merge_series(
    results: Sequence[Dict[str, Any]],
    key_property: str,
    strip_property: Optional[str] = None,
) -> List[Any]:
    """Sum the ``result`` series of a query batch per ``key_property``.

    ``results`` is the batch response list, each item holding a ``result``
    that is either a flat list of category values or a list of
    ``{"timeframe", "value"}`` buckets. Interval buckets are matched by
    position and the timeframe of the first series is kept, so every series
    must cover the same timeline.
    """
    if not results:
        return []

    first = results[0]["result"]
    if not is_interval_series(first):
        index: MergedIndex = {}
        for res in results:
            for entry in res["result"]:
                merge_sum(entry, index, key_property)
        return flatten_merged(index, strip_property)

    merged = []
    for i, bucket in enumerate(first):
        index = {}
        for res in results:
            for entry in res["result"][i]["value"]:
                merge_sum(entry, index, key_property)
        merged.append(
            {
                "timeframe": bucket["timeframe"],
                "value": flatten_merged(index, strip_property),
            }
        )
    return merged


def sum_results(results: Sequence[Dict[str, Any]]) -> float:
    """Add up the scalar ``result`` of every response in a batch."""
    total = 0
    for res in results:
        total += res["result"]
    return total


__all__ = ["flatten_merged", "is_interval_series", "merge_series", "merge_sum", "sum_results"]

"""Merging logic for values found in several layers."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Sequence


def merge_mappings(hits: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Deep merge mapping hits ordered from highest to lowest priority.

    Earlier mappings win member by member. Nested mappings are merged
    recursively; any other member type from a higher-priority hit shadows
    whatever lower hits hold under the same segment.

    Args:
        hits: Mapping values for the same key, highest priority first.

    Returns:
        Read-only merged mapping.
    """
    if len(hits) == 1:
        return hits[0]

    merged: Dict[str, Any] = {}
    for hit in hits:
        for key, value in hit.items():
            if key not in merged:
                merged[key] = [value]
            else:
                merged[key].append(value)

    result: Dict[str, Any] = {}
    for key, values in merged.items():
        first = values[0]
        if isinstance(first, Mapping):
            # only mappings below a mapping take part in the merge
            nested = [v for v in values if isinstance(v, Mapping)]
            result[key] = merge_mappings(nested)
        else:
            result[key] = first
    return MappingProxyType(result)

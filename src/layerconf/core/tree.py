"""Key normalisation and helpers for nested configuration trees."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

_KEY_SPLIT = re.compile(r"[.\[\]]")


def split_key(key: str) -> Tuple[str, ...]:
    """Split a key into its segments.

    ``a.b[0].c`` and ``a.b.0.c`` both yield ``("a", "b", "0", "c")``; empty
    segments are dropped so ``.a..b`` equals ``a.b``.
    """
    return tuple(part for part in _KEY_SPLIT.split(key) if part)


def join_key(*parts: str) -> str:
    return ".".join(p for p in parts if p)


def normalize_key(key: str) -> str:
    return join_key(*split_key(key))


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def set_path(tree: Dict[str, Any], path: Sequence[str], value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate mappings.

    A scalar sitting where a mapping is needed is replaced.
    """
    if not path:
        return
    node = tree
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    last = path[-1]
    existing = node.get(last)
    if isinstance(existing, dict) and isinstance(value, dict):
        for k, v in value.items():
            set_path(existing, (k,), v)
    else:
        node[last] = value


def build_tree(data: Mapping[Any, Any]) -> Dict[str, Any]:
    """Build a nested tree from flat dotted keys and/or nested mappings."""
    tree: Dict[str, Any] = {}
    for key, value in data.items():
        path = split_key(str(key))
        if not path:
            continue
        set_path(tree, path, _build_value(value))
    return tree


def _build_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return build_tree(value)
    if is_sequence(value):
        return [_build_value(v) for v in value]
    return value


def freeze(value: Any) -> Any:
    """Return a read-only deep copy: mappings become proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): freeze(v) for k, v in value.items()})
    if is_sequence(value):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if is_sequence(value):
        return [thaw(v) for v in value]
    return value


def lookup(tree: Any, path: Sequence[str]) -> Optional[Any]:
    """Walk ``path`` through mappings and sequences; None when absent."""
    node = tree
    for part in path:
        if isinstance(node, Mapping):
            if part not in node:
                return None
            node = node[part]
        elif is_sequence(node):
            if not (part.isascii() and part.isdigit()):
                return None
            index = int(part)
            if index >= len(node):
                return None
            node = node[index]
        else:
            return None
    return node


def iter_hierarchical(data: Any, parent: str = "") -> Iterator[Tuple[str, Any]]:
    """Flatten nested mappings and sequences using dot-notation.

    Args:
        data: Mapping or sequence to flatten.
        parent: Parent key prefix for recursion.

    Yields:
        Tuples of (flattened_key, leaf_value).
    """
    if isinstance(data, Mapping):
        items: Iterator[Tuple[str, Any]] = iter(data.items())
    else:
        items = ((str(i), v) for i, v in enumerate(data))

    for key, value in items:
        full_key = key if not parent else f"{parent}.{key}"
        if is_mapping(value) or is_sequence(value):
            if not value:
                yield full_key, value
                continue
            yield from iter_hierarchical(value, full_key)
        else:
            yield full_key, value


def flat_keys(tree: Any) -> List[str]:
    if tree is None:
        return []
    return [k for k, _ in iter_hierarchical(tree)]


def scalar_text(value: Any) -> str:
    """Textual form of a scalar, spelling booleans the way sources do."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

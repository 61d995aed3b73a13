"""Source registry and the immutable snapshots it publishes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from .errors import DuplicateSourceNameError
from .merge import merge_mappings
from .source import Source, SourceEntry
from .tree import flat_keys, lookup, normalize_key, split_key
from .types import RawValue

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Layer:
    """One source's contribution to a snapshot.

    Attributes:
        entry: Registration record of the source.
        data: Tree captured from the source, or None for read-through sources.
    """

    entry: SourceEntry
    data: Optional[Mapping[str, Any]] = None

    @classmethod
    def capture(cls, entry: SourceEntry) -> "Layer":
        # sources without current() are read through on every lookup
        current = getattr(entry.source, "current", None)
        return cls(entry=entry, data=current() if current is not None else None)

    def get_raw(self, key: str) -> Optional[RawValue]:
        if self.data is None:
            return self.entry.source.get_raw(key)
        return lookup(self.data, split_key(key))

    def keys(self) -> List[str]:
        if self.data is None:
            return list(self.entry.source.keys())
        return flat_keys(self.data)


@dataclass(frozen=True)
class Snapshot:
    """Immutable, priority-ordered view over the registered sources.

    Attributes:
        layers: One layer per source, highest priority first.
        generation: Incremented each time a new snapshot is published.
    """

    layers: Tuple[Layer, ...] = ()
    generation: int = 0

    def resolve_raw(self, key: str) -> Optional[RawValue]:
        """Find the raw value for ``key``.

        The first layer holding the key wins. When that value is a mapping,
        mappings found in lower layers are merged underneath it.

        Args:
            key: Dot-delimited configuration key.

        Returns:
            Raw value, or None if no layer holds the key.
        """
        key = normalize_key(key)
        hits: List[Mapping[str, Any]] = []
        for layer in self.layers:
            value = layer.get_raw(key) if key else layer.data
            if value is None:
                continue
            if not hits:
                if not isinstance(value, Mapping):
                    return value
                hits.append(value)
            elif isinstance(value, Mapping):
                hits.append(value)
        if not hits:
            return None
        return merge_mappings(hits)

    def source_of(self, key: str) -> Optional[str]:
        """Name of the source whose value wins for ``key``."""
        key = normalize_key(key)
        for layer in self.layers:
            if layer.get_raw(key) is not None:
                return layer.entry.name
        return None

    def keys(self) -> List[str]:
        seen: Dict[str, None] = {}
        for layer in self.layers:
            for k in layer.keys():
                seen.setdefault(k, None)
        return list(seen)

    def with_layers(self, layers: Iterable[Layer]) -> "Snapshot":
        return Snapshot(layers=tuple(layers), generation=self.generation + 1)


class SourceRegistry:
    """Ordered collection of named sources; order encodes priority."""

    def __init__(self) -> None:
        self._entries: List[SourceEntry] = []
        self._names: Dict[str, SourceEntry] = {}
        self._current = Snapshot()

    def register(self, name: str, source: Source, refreshable: bool = False) -> SourceEntry:
        """Append a source with the next priority index.

        Args:
            name: Unique source name.
            source: Object implementing the Source protocol.
            refreshable: Whether refresh cycles query this source.

        Returns:
            The registration record.

        Raises:
            DuplicateSourceNameError: If ``name`` is already registered.
        """
        if name in self._names:
            raise DuplicateSourceNameError(name)
        entry = SourceEntry(
            name=name,
            priority=len(self._entries),
            source=source,
            refreshable=refreshable,
        )
        self._entries.append(entry)
        self._names[name] = entry
        self.publish(self._current.with_layers([*self._current.layers, Layer.capture(entry)]))
        logger.debug(
            "source_registered",
            source=name,
            priority=entry.priority,
            refreshable=refreshable,
        )
        return entry

    @property
    def entries(self) -> Tuple[SourceEntry, ...]:
        return tuple(self._entries)

    def get(self, name: str) -> Optional[SourceEntry]:
        return self._names.get(name)

    def names(self) -> List[str]:
        return [e.name for e in self._entries]

    def snapshot(self) -> Snapshot:
        return self._current

    def publish(self, snapshot: Snapshot) -> None:
        # a single reference assignment; readers see the old or the new one
        self._current = snapshot

    def __len__(self) -> int:
        return len(self._entries)

"""Source protocol and registration records for configuration sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol

import structlog

from .errors import ConfigError, SourceLoadError
from .tree import build_tree, flat_keys, freeze, lookup, split_key
from .types import RawValue, RefreshOutcome

logger = structlog.get_logger(__name__)


class Source(Protocol):
    """Protocol defining the interface for configuration sources.

    All configuration sources must implement this protocol to be
    registered with a Configuration.
    """

    name: str

    def get_raw(self, key: str) -> Optional[RawValue]:
        """Get the best raw value for a key.

        Args:
            key: Dot-delimited configuration key.

        Returns:
            Scalar, tuple or read-only mapping, or None if absent.
        """
        ...

    def keys(self) -> List[str]:
        """Get all leaf keys known to the source.

        Returns:
            List of dot-delimited keys.
        """
        ...

    def is_refreshable(self) -> bool:
        """Whether the source can pick up changes after registration."""
        ...

    def try_refresh(self) -> RefreshOutcome:
        """Re-fetch the source data.

        Returns:
            Changed, unchanged, or an error outcome carrying the reason.
        """
        ...

    def current(self) -> Optional[Mapping[str, Any]]:
        """Get the immutable tree the source is serving right now.

        Optional: sources without this method are read through like random
        values.

        Returns:
            Read-only mapping captured by snapshots, or None when the source
            must be read through on every lookup (e.g. random values).
        """
        ...


@dataclass(frozen=True)
class SourceEntry:
    """A source registered with a Configuration.

    Attributes:
        name: Unique name within the registry.
        priority: Registration sequence number; lower wins.
        source: The source instance.
        refreshable: Whether refresh cycles query this source.
    """

    name: str
    priority: int
    source: Source
    refreshable: bool = False


class TreeSource(Source):
    """Base class for sources that serve an immutable nested tree.

    Subclasses implement :meth:`_fetch` and, optionally,
    :meth:`_fetch_if_modified` to skip work when the backing store has not
    moved. The served tree is swapped as a whole on refresh, never mutated,
    so snapshots holding the previous tree keep seeing consistent data.
    """

    refreshable: bool = False

    def __init__(self, name: str):
        self.name = name
        self._tree: Mapping[str, Any] = freeze({})

    def _fetch(self) -> Mapping[Any, Any]:
        raise NotImplementedError

    def _fetch_if_modified(self) -> Optional[Mapping[Any, Any]]:
        """Return fresh data, or None when the backing store is unchanged."""
        return self._fetch()

    def load(self) -> None:
        """Perform the initial load; failures surface as SourceLoadError."""
        try:
            data = self._fetch()
        except ConfigError:
            raise
        except Exception as exc:
            raise SourceLoadError(self.name, str(exc)) from exc
        self._tree = freeze(build_tree(data))

    def get_raw(self, key: str) -> Optional[RawValue]:
        return lookup(self._tree, split_key(key))

    def keys(self) -> List[str]:
        return flat_keys(self._tree)

    def is_refreshable(self) -> bool:
        return self.refreshable

    def current(self) -> Optional[Mapping[str, Any]]:
        return self._tree

    def try_refresh(self) -> RefreshOutcome:
        try:
            data = self._fetch_if_modified()
        except Exception as exc:
            logger.debug("source_fetch_failed", source=self.name, error=str(exc))
            return RefreshOutcome.error(str(exc) or type(exc).__name__)
        if data is None:
            return RefreshOutcome.unchanged()
        tree = freeze(build_tree(data))
        if tree == self._tree:
            return RefreshOutcome.unchanged()
        self._tree = tree
        return RefreshOutcome.changed()

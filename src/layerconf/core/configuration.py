from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from .coerce import Coercer, is_optional
from .errors import MissingKeyError, UnsupportedSourceError
from .placeholder import PlaceholderResolver
from .refresh import AutoRefresher, RefreshController, RefValue
from .snapshot import Snapshot, SourceRegistry
from .source import Source, SourceEntry
from .tree import normalize_key
from .types import RefreshReport

# Lazy imports inside the register_* helpers keep optional dependencies
# (redis, httpx, PyYAML) out of module load time.

logger = structlog.get_logger(__name__)


class Configuration:
    """Layered configuration built from prioritised sources.

    Sources registered first take precedence. Every read captures the
    currently published snapshot once and resolves against it, so a refresh
    running in another thread never produces a mix of old and new values.

    Example:
        >>> config = Configuration()
        >>> config.register_kv("defaults", {"app.port": "8080"})
        >>> config.get("app.port", int)
        8080
    """

    def __init__(
        self,
        coercer: Optional[Coercer] = None,
        resolver: Optional[PlaceholderResolver] = None,
    ):
        self._registry = SourceRegistry()
        self._coercer = coercer or Coercer()
        self._resolver = resolver or PlaceholderResolver()
        self._controller = RefreshController(self._registry, self._resolve)
        self._auto_refresher: Optional[AutoRefresher] = None

    @property
    def coercer(self) -> Coercer:
        return self._coercer

    # Reads

    def _resolve(self, snapshot: Snapshot, key: str, shape: Any) -> Any:
        key = normalize_key(key)
        raw = snapshot.resolve_raw(key)
        if raw is None:
            if is_optional(shape):
                return None
            raise MissingKeyError(key)
        value = self._resolver.expand(raw, snapshot, key)
        return self._coercer.coerce(value, key, shape)

    def get(self, key: str, shape: Any = str) -> Any:
        """Get a typed configuration value.

        Args:
            key: Dot-delimited key, e.g. ``app.server.port``.
            shape: Target shape; ``Optional[...]`` returns None when missing.

        Returns:
            The resolved and coerced value.

        Raises:
            MissingKeyError: If no source holds the key.
            PlaceholderError: If placeholder expansion fails.
            CoercionError: If the value does not fit ``shape``.
        """
        return self._resolve(self._registry.snapshot(), key, shape)

    def get_or(self, key: str, default: Any, shape: Any = None) -> Any:
        """Like :meth:`get`, returning ``default`` when the key is missing.

        Only a missing key falls back; placeholder and coercion failures
        still raise. Without ``shape`` the type of ``default`` is used.
        """
        if shape is None:
            shape = str if default is None else type(default)
        snapshot = self._registry.snapshot()
        if snapshot.resolve_raw(normalize_key(key)) is None:
            return default
        return self._resolve(snapshot, key, shape)

    def get_ref(self, key: str, shape: Any = str) -> RefValue[Any]:
        """Get a live handle that follows the key across refreshes."""
        snapshot = self._registry.snapshot()
        value = self._resolve(snapshot, key, shape)
        handle: RefValue[Any] = RefValue(normalize_key(key), shape, value, snapshot.generation)
        self._controller.subscribe(handle)
        return handle

    def subscribe(self, handle: RefValue[Any]) -> None:
        self._controller.subscribe(handle)

    def keys(self) -> List[str]:
        return self._registry.snapshot().keys()

    def source_names(self) -> List[str]:
        return self._registry.names()

    def source_of(self, key: str) -> Optional[str]:
        return self._registry.snapshot().source_of(key)

    def snapshot(self) -> Snapshot:
        return self._registry.snapshot()

    def as_dict(self, prefix: str = "") -> Dict[str, Any]:
        """Resolved values of every key under ``prefix`` as plain text."""
        snapshot = self._registry.snapshot()
        prefix = normalize_key(prefix)
        keys = [
            k for k in snapshot.keys()
            if not prefix or k == prefix or k.startswith(prefix + ".")
        ]
        return {k: self._resolve(snapshot, k, Any) for k in keys}

    # Registration

    def register_source(
        self, name: str, source: Source, refreshable: Optional[bool] = None
    ) -> SourceEntry:
        """Register a source below every source registered so far.

        Args:
            name: Unique source name.
            source: Object implementing the Source protocol.
            refreshable: Defaults to ``source.is_refreshable()``.

        Returns:
            The registration record.
        """
        if refreshable is None:
            refreshable = source.is_refreshable()
        return self._registry.register(name, source, refreshable)

    def _add(self, source: Any, refreshable: Optional[bool] = None) -> Any:
        self.register_source(source.name, source, refreshable)
        return source

    def register_kv(self, name: str, values: Optional[Mapping[str, Any]] = None) -> Any:
        from ..sources.memory import KeyValueSource

        return self._add(KeyValueSource(values, name=name))

    def register_prefix_env(
        self,
        prefix: str,
        environ: Optional[Mapping[str, str]] = None,
        name: Optional[str] = None,
        refreshable: bool = False,
    ) -> Any:
        from ..sources.environment import PrefixEnvSource

        return self._add(PrefixEnvSource(prefix, environ=environ, name=name), refreshable)

    def register_file(
        self,
        path: Union[str, Path],
        required: bool = True,
        name: Optional[str] = None,
        format: Optional[str] = None,
    ) -> Any:
        """Register a file source chosen by extension (or ``format``).

        Raises:
            UnsupportedSourceError: If the format is not recognised.
            SourceLoadError: If the file cannot be read or parsed.
        """
        from ..sources.file import open_file_source

        return self._add(open_file_source(path, required=required, name=name, format=format))

    def register_random(self, name: str = "random") -> Any:
        from ..sources.random import RandomSource

        return self._add(RandomSource(name=name))

    def register_redis(self, url: str, prefix: str = "", name: Optional[str] = None) -> Any:
        from ..sources.redis_kv import RedisSource

        return self._add(RedisSource(url, prefix=prefix, name=name))

    def register_http(self, url: str, name: Optional[str] = None, format: Optional[str] = None) -> Any:
        from ..sources.http import HttpSource

        return self._add(HttpSource(url, name=name, format=format))

    def register_uri(self, uri: Union[str, Path], name: Optional[str] = None) -> Any:
        """Register a source from a URI or path.

        ``redis://`` and ``rediss://`` go to Redis, ``http://`` and
        ``https://`` to an HTTP document, anything else is a file path.
        """
        s = str(uri)
        if s.startswith(("redis://", "rediss://")):
            return self.register_redis(s, name=name)
        if s.startswith(("http://", "https://")):
            return self.register_http(s, name=name)
        if "://" in s:
            raise UnsupportedSourceError(s)
        return self.register_file(s, name=name)

    # Refresh

    def refresh(self, raise_on_error: bool = True) -> RefreshReport:
        """Run one refresh cycle.

        Raises:
            RefreshError: If a source or a live handle failed and
                ``raise_on_error`` is set.
        """
        return self._controller.refresh(raise_on_error=raise_on_error)

    def start_auto_refresh(self, interval: float) -> AutoRefresher:
        if self._auto_refresher is not None and self._auto_refresher.is_alive():
            return self._auto_refresher
        self._auto_refresher = AutoRefresher(self._controller, interval)
        self._auto_refresher.start()
        logger.debug("auto_refresh_started", interval=interval)
        return self._auto_refresher

    def stop_auto_refresh(self) -> None:
        if self._auto_refresher is not None:
            self._auto_refresher.stop()
            self._auto_refresher = None

    def __len__(self) -> int:
        return len(self._registry)

    def __repr__(self) -> str:
        return f"Configuration(sources={self.source_names()!r})"

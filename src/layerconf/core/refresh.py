"""Refresh cycles, snapshot publication and live value handles."""

from __future__ import annotations

import enum
import threading
import weakref
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

import structlog

from .errors import ConfigError, RefreshError, SourceRefreshError
from .snapshot import Layer, Snapshot, SourceRegistry
from .types import RefreshOutcome, RefreshReport, SourceRefreshResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Resolve = Callable[[Snapshot, str, Any], Any]
Listener = Callable[[Any, Any], None]


class RefValue(Generic[T]):
    """Live handle on a typed configuration value.

    The held value is swapped in place whenever a refresh publishes a
    snapshot in which the key resolves to something different. If the key
    stops resolving, the previous value is kept.

    The refresh controller only keeps a weak reference, so a handle lives
    exactly as long as the code holding it.
    """

    def __init__(self, key: str, shape: Any, value: T, generation: int = 0):
        self.key = key
        self.shape = shape
        self._value = value
        self._generation = generation
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def get(self) -> T:
        with self._lock:
            return self._value

    @property
    def value(self) -> T:
        return self.get()

    @property
    def generation(self) -> int:
        """Generation of the snapshot the current value was resolved from."""
        return self._generation

    def add_listener(self, listener: Listener) -> None:
        """Call ``listener(old, new)`` after each swap."""
        self._listeners.append(listener)

    def _swap(self, value: T, generation: int) -> Tuple[bool, List[Exception]]:
        """Store ``value``; returns whether it changed and any listener errors.

        Every listener runs even when an earlier one raises.
        """
        with self._lock:
            old = self._value
            self._generation = generation
            if old == value:
                return False, []
            self._value = value
        errors: List[Exception] = []
        for listener in list(self._listeners):
            try:
                listener(old, value)
            except Exception as exc:
                logger.warning("ref_value_listener_failed", key=self.key, error=str(exc))
                errors.append(exc)
        return True, errors

    def __repr__(self) -> str:
        return f"RefValue(key={self.key!r}, value={self._value!r})"


class RefreshState(str, enum.Enum):
    STABLE = "stable"
    REFRESHING = "refreshing"


class RefreshController:
    """Builds and publishes new snapshots from refreshable sources.

    Only one cycle runs at a time; a concurrent caller blocks until the
    running cycle finishes. Readers are never blocked: they keep using the
    snapshot they captured.
    """

    def __init__(self, registry: SourceRegistry, resolve: Resolve):
        self._registry = registry
        self._resolve = resolve
        self._lock = threading.Lock()
        self._handles: "weakref.WeakSet[RefValue[Any]]" = weakref.WeakSet()
        self._handles_lock = threading.Lock()
        self.state = RefreshState.STABLE

    def subscribe(self, handle: RefValue[Any]) -> None:
        with self._handles_lock:
            self._handles.add(handle)

    def subscribers(self) -> List[RefValue[Any]]:
        with self._handles_lock:
            return list(self._handles)

    def refresh(self, raise_on_error: bool = True) -> RefreshReport:
        """Run one refresh cycle.

        Args:
            raise_on_error: Raise RefreshError when a source or handle failed.

        Returns:
            The cycle report.

        Raises:
            RefreshError: If ``raise_on_error`` and anything failed. Any
                snapshot the cycle built is already published.
        """
        with self._lock:
            self.state = RefreshState.REFRESHING
            try:
                report = self._run_cycle()
            finally:
                self.state = RefreshState.STABLE

        if raise_on_error and not report.ok:
            failures = [
                SourceRefreshError(r.source_name, r.outcome.reason or "unknown error")
                for r in report.results
                if r.outcome.is_error
            ]
            raise RefreshError(failures, list(report.handle_failures), report)
        return report

    def _run_cycle(self) -> RefreshReport:
        previous = self._registry.snapshot()
        report = RefreshReport(generation=previous.generation)

        refreshable = [e for e in self._registry.entries if e.refreshable]
        for entry in refreshable:
            try:
                outcome = entry.source.try_refresh()
            except Exception as exc:
                outcome = RefreshOutcome.error(str(exc) or type(exc).__name__)
            if outcome.is_error:
                logger.warning("source_refresh_failed", source=entry.name, reason=outcome.reason)
            report.results.append(SourceRefreshResult(entry.name, outcome))

        if not refreshable:
            return report
        if len(report.failed_sources) == len(refreshable):
            logger.warning("refresh_aborted", failed=report.failed_sources)
            return report
        changed = set(report.changed_sources)
        if not changed:
            return report

        # failing and unchanged sources keep the data of the previous snapshot
        layers = [
            Layer.capture(layer.entry) if layer.entry.name in changed else layer
            for layer in previous.layers
        ]
        snapshot = previous.with_layers(layers)
        self._registry.publish(snapshot)
        report.published = True
        report.generation = snapshot.generation
        logger.info(
            "snapshot_published",
            generation=snapshot.generation,
            changed=sorted(changed),
            failed=report.failed_sources,
        )
        self._notify(snapshot, report)
        return report

    def _notify(self, snapshot: Snapshot, report: RefreshReport) -> None:
        for handle in self.subscribers():
            try:
                value = self._resolve(snapshot, handle.key, handle.shape)
            except ConfigError as exc:
                logger.warning("ref_value_retained", key=handle.key, error=str(exc))
                report.handle_failures.append((handle.key, exc))
                continue
            swapped, errors = handle._swap(value, snapshot.generation)
            if swapped:
                report.handles_updated += 1
            report.handle_failures.extend((handle.key, exc) for exc in errors)


class AutoRefresher(threading.Thread):
    """Daemon thread running a refresh cycle every ``interval`` seconds."""

    def __init__(self, controller: RefreshController, interval: float):
        super().__init__(name="layerconf-auto-refresh", daemon=True)
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._controller = controller
        self.interval = interval
        self._stopped = threading.Event()
        self.last_report: Optional[RefreshReport] = None

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.last_report = self._controller.refresh()
            except RefreshError as exc:
                self.last_report = exc.report
                logger.error("auto_refresh_failed", error=str(exc))
            except Exception as exc:
                logger.error("auto_refresh_failed", error=str(exc) or type(exc).__name__)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stopped.set()
        if self.is_alive():
            self.join(timeout)

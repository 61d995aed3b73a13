"""Type definitions shared across the configuration engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Union

# Scalars are text or native values from typed formats (TOML, YAML, JSON).
Scalar = Union[str, int, float, bool]
RawValue = Union[Scalar, Tuple[Any, ...], Mapping[str, Any]]


class RefreshStatus(str, enum.Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    ERROR = "error"


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of asking one source to refresh.

    Attributes:
        status: Whether the source changed, stayed the same, or failed.
        reason: Failure description when status is ERROR.
    """

    status: RefreshStatus
    reason: Optional[str] = None

    @classmethod
    def unchanged(cls) -> "RefreshOutcome":
        return cls(RefreshStatus.UNCHANGED)

    @classmethod
    def changed(cls) -> "RefreshOutcome":
        return cls(RefreshStatus.CHANGED)

    @classmethod
    def error(cls, reason: str) -> "RefreshOutcome":
        return cls(RefreshStatus.ERROR, reason)

    @property
    def is_error(self) -> bool:
        return self.status is RefreshStatus.ERROR


@dataclass(frozen=True)
class SourceRefreshResult:
    source_name: str
    outcome: RefreshOutcome


@dataclass
class RefreshReport:
    """Summary of one refresh cycle.

    Attributes:
        results: Per-source outcomes, in priority order.
        published: True when a new snapshot replaced the previous one.
        generation: Generation of the snapshot published after the cycle.
        handles_updated: Number of RefValues whose value was swapped.
        handle_failures: ``(key, error)`` for RefValues that kept their value
            or whose listeners raised.
    """

    results: List[SourceRefreshResult] = field(default_factory=list)
    published: bool = False
    generation: int = 0
    handles_updated: int = 0
    handle_failures: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def changed_sources(self) -> List[str]:
        return [r.source_name for r in self.results if r.outcome.status is RefreshStatus.CHANGED]

    @property
    def failed_sources(self) -> List[str]:
        return [r.source_name for r in self.results if r.outcome.is_error]

    @property
    def ok(self) -> bool:
        return not self.failed_sources and not self.handle_failures

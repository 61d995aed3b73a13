"""Error types raised by the configuration engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .types import RefreshReport


class ConfigError(Exception):
    """Base class for every error raised by layerconf."""


class MissingKeyError(ConfigError, KeyError):
    """A key is absent from every registered source.

    Attributes:
        key: Normalised key that was looked up.
    """

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Configuration not found: {self.key}"


class CoercionError(ConfigError, ValueError):
    """A resolved value could not be converted to the requested shape.

    Attributes:
        key: Key whose value failed to convert.
        target_shape: Human readable name of the requested shape.
        raw_text: Literal text that failed to parse.
    """

    def __init__(self, key: str, target_shape: str, raw_text: str, detail: str = ""):
        self.key = key
        self.target_shape = target_shape
        self.raw_text = raw_text
        self.detail = detail
        super().__init__(key, target_shape, raw_text)

    def __str__(self) -> str:
        msg = (
            f"Cannot convert value of '{self.key}' to {self.target_shape}: "
            f"{self.raw_text!r}"
        )
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg


class PlaceholderError(ConfigError):
    """Base class for placeholder expansion failures."""


class PlaceholderCycleError(PlaceholderError):
    """A placeholder refers back to a key already being expanded.

    Attributes:
        chain: Keys in expansion order, ending with the repeated key.
    """

    def __init__(self, chain: Sequence[str]):
        self.chain: Tuple[str, ...] = tuple(chain)
        super().__init__(self.chain)

    def __str__(self) -> str:
        return "Placeholder cycle detected: " + " -> ".join(self.chain)


class PlaceholderUnresolvedError(PlaceholderError):
    """A placeholder names a key that is absent and has no default.

    Attributes:
        key: Key named inside the placeholder.
        referenced_from: Key whose value contained the placeholder.
    """

    def __init__(self, key: str, referenced_from: Optional[str] = None):
        self.key = key
        self.referenced_from = referenced_from
        super().__init__(key, referenced_from)

    def __str__(self) -> str:
        if self.referenced_from:
            return (
                f"Placeholder '${{{self.key}}}' in '{self.referenced_from}' "
                "cannot be resolved"
            )
        return f"Placeholder '${{{self.key}}}' cannot be resolved"


class PlaceholderSyntaxError(PlaceholderError, ValueError):
    """Malformed placeholder text, such as an unterminated ``${``.

    Attributes:
        raw_text: Full text being parsed.
        position: Offset of the offending character in ``raw_text``.
        key: Key whose value was being parsed, when known.
    """

    def __init__(self, raw_text: str, position: int, key: Optional[str] = None):
        self.raw_text = raw_text
        self.position = position
        self.key = key
        super().__init__(raw_text, position, key)

    def __str__(self) -> str:
        where = f" in '{self.key}'" if self.key else ""
        return (
            f"Invalid placeholder syntax{where} at position {self.position}: "
            f"{self.raw_text!r}"
        )


class DuplicateSourceNameError(ConfigError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Source name already registered: {self.name}"


class SourceLoadError(ConfigError):
    """A source failed during construction or its initial load."""

    def __init__(self, source_name: str, reason: str):
        self.source_name = source_name
        self.reason = reason
        super().__init__(source_name, reason)

    def __str__(self) -> str:
        return f"Failed to load source {self.source_name}: {self.reason}"


class SourceRefreshError(ConfigError):
    """A single source failed to refresh."""

    def __init__(self, source_name: str, reason: str):
        self.source_name = source_name
        self.reason = reason
        super().__init__(source_name, reason)

    def __str__(self) -> str:
        return f"Failed to refresh source {self.source_name}: {self.reason}"


class RefreshError(ConfigError):
    """Aggregated failures from one refresh cycle.

    Raised after the cycle finished, so any snapshot the cycle could build
    has already been published when this is seen.

    Attributes:
        failures: One SourceRefreshError per failing source.
        handle_failures: ``(key, error)`` pairs for RefValues that kept their
            previous value because re-resolution failed, or whose listeners
            raised.
        report: The full RefreshReport of the cycle.
    """

    def __init__(
        self,
        failures: List[SourceRefreshError],
        handle_failures: List[Tuple[str, Exception]],
        report: "RefreshReport",
    ):
        self.failures = failures
        self.handle_failures = handle_failures
        self.report = report
        super().__init__(failures, handle_failures)

    def __str__(self) -> str:
        parts = [str(f) for f in self.failures]
        parts.extend(f"ref value '{k}': {e}" for k, e in self.handle_failures)
        return "Refresh completed with errors: " + "; ".join(parts)


class ValidationError(ConfigError):
    """Raised by field validation hooks; passed through unchanged."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(field, reason)

    def __str__(self) -> str:
        return f"Validation failed for '{self.field}': {self.reason}"


class UnsupportedSourceError(ConfigError, ValueError):
    def __init__(self, location: Any):
        self.location = location
        super().__init__(location)

    def __str__(self) -> str:
        return f"Unsupported source type: {self.location}"

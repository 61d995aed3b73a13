from .coerce import (
    F32,
    I8,
    I16,
    I32,
    I64,
    I128,
    U8,
    U16,
    U32,
    U64,
    U128,
    Coercer,
    FloatShape,
    IntShape,
)
from .configuration import Configuration
from .errors import (
    CoercionError,
    ConfigError,
    DuplicateSourceNameError,
    MissingKeyError,
    PlaceholderCycleError,
    PlaceholderError,
    PlaceholderSyntaxError,
    PlaceholderUnresolvedError,
    RefreshError,
    SourceLoadError,
    SourceRefreshError,
    UnsupportedSourceError,
    ValidationError,
)
from .placeholder import PlaceholderResolver
from .refresh import AutoRefresher, RefreshController, RefValue
from .snapshot import Snapshot, SourceRegistry
from .source import Source, SourceEntry, TreeSource
from .types import RefreshOutcome, RefreshReport, RefreshStatus

__all__ = [
    "Configuration",
    "Source",
    "SourceEntry",
    "TreeSource",
    "SourceRegistry",
    "Snapshot",
    "PlaceholderResolver",
    "Coercer",
    "IntShape",
    "FloatShape",
    "I8",
    "I16",
    "I32",
    "I64",
    "I128",
    "U8",
    "U16",
    "U32",
    "U64",
    "U128",
    "F32",
    "RefValue",
    "RefreshController",
    "AutoRefresher",
    "RefreshOutcome",
    "RefreshReport",
    "RefreshStatus",
    "ConfigError",
    "MissingKeyError",
    "CoercionError",
    "PlaceholderError",
    "PlaceholderCycleError",
    "PlaceholderUnresolvedError",
    "PlaceholderSyntaxError",
    "DuplicateSourceNameError",
    "SourceLoadError",
    "SourceRefreshError",
    "RefreshError",
    "ValidationError",
    "UnsupportedSourceError",
]

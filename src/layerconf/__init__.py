"""layerconf - Layered configuration resolution.

Compose configuration from prioritised sources (files, environment
variables, inline maps, random values, Redis, HTTP) into one hierarchical
namespace with ``${key:default}`` placeholders, typed reads and live
refresh.
"""

from .binding import config_field, config_prefix, from_config, from_prefix
from .bootstrap import PredefinedBuilder
from .core.coerce import F32, I8, I16, I32, I64, I128, U8, U16, U32, U64, U128
from .core.configuration import Configuration
from .core.errors import (
    CoercionError,
    ConfigError,
    MissingKeyError,
    PlaceholderCycleError,
    PlaceholderSyntaxError,
    PlaceholderUnresolvedError,
    RefreshError,
    SourceLoadError,
    ValidationError,
)
from .core.refresh import RefValue
from .core.source import Source, TreeSource

__all__ = [
    "Configuration",
    "PredefinedBuilder",
    "Source",
    "TreeSource",
    "RefValue",
    "config_prefix",
    "config_field",
    "from_config",
    "from_prefix",
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
    "ConfigError",
    "MissingKeyError",
    "CoercionError",
    "PlaceholderCycleError",
    "PlaceholderUnresolvedError",
    "PlaceholderSyntaxError",
    "RefreshError",
    "SourceLoadError",
    "ValidationError",
]

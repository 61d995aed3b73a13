"""Build dataclasses from configuration.

Example:
    >>> @config_prefix("app.server")
    ... @dataclass
    ... class Server:
    ...     host: str = "localhost"
    ...     port: int = config_field(default=8080, validate=lambda p: 0 < p < 65536)
    >>> server = from_config(config, Server)
"""

from __future__ import annotations

import dataclasses
import typing
from typing import Any, Callable, Optional, Type, TypeVar

from .core.configuration import Configuration
from .core.errors import ValidationError
from .core.tree import join_key, normalize_key

T = TypeVar("T")

PREFIX_ATTR = "__config_prefix__"

_MISSING = object()


def config_prefix(prefix: str) -> Callable[[Type[T]], Type[T]]:
    """Class decorator recording the key prefix used by :func:`from_config`."""

    def decorator(cls: Type[T]) -> Type[T]:
        setattr(cls, PREFIX_ATTR, normalize_key(prefix))
        return cls

    return decorator


def config_field(
    *,
    name: Optional[str] = None,
    validate: Optional[Callable[[Any], Any]] = None,
    **kwargs: Any,
) -> Any:
    """``dataclasses.field`` with binding metadata.

    Args:
        name: Key segment to read instead of the field name.
        validate: Called with the coerced value; returning False or raising
            ValidationError rejects it.
        **kwargs: Passed to ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    if name is not None:
        metadata["name"] = name
    if validate is not None:
        metadata["validate"] = validate
    return dataclasses.field(metadata=metadata, **kwargs)


def _has_default(f: dataclasses.Field) -> bool:
    return f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING


def from_prefix(config: Configuration, cls: Type[T], prefix: str) -> T:
    """Build ``cls`` reading each field from ``{prefix}.{field}``.

    Fields with a default, and ``Optional`` fields, may be missing. Nested
    dataclass fields read from ``{prefix}.{field}`` recursively.

    Raises:
        TypeError: If ``cls`` is not a dataclass.
        MissingKeyError: If a required field has no value.
        CoercionError: If a value does not fit the field's type.
        ValidationError: If a field validator rejects its value.
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a dataclass")

    hints = typing.get_type_hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        key = join_key(normalize_key(prefix), f.metadata.get("name", f.name))
        hint = hints.get(f.name, str)

        if isinstance(hint, type) and dataclasses.is_dataclass(hint):
            value: Any = from_prefix(config, hint, key)
        elif _has_default(f):
            value = config.get_or(key, _MISSING, hint)
            if value is _MISSING:
                continue
        else:
            value = config.get(key, hint)

        validate = f.metadata.get("validate")
        if validate is not None and validate(value) is False:
            raise ValidationError(key, "validation failed")
        kwargs[f.name] = value
    return cls(**kwargs)


def from_config(config: Configuration, cls: Type[T]) -> T:
    """Build ``cls`` from the prefix given by :func:`config_prefix`."""
    prefix = getattr(cls, PREFIX_ATTR, None)
    if prefix is None:
        raise TypeError(f"{cls.__name__} has no @config_prefix")
    return from_prefix(config, cls, prefix)

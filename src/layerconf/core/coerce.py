"""Conversion of resolved values into typed results."""

from __future__ import annotations

import collections.abc
import enum
import ipaddress
import math
import re
import types
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union, get_args, get_origin

from .errors import CoercionError
from .tree import is_sequence, join_key, scalar_text, thaw


@dataclass(frozen=True)
class IntShape:
    """Fixed-width integer target.

    Attributes:
        name: Display name used in error messages, e.g. ``u16``.
        bits: Width in bits.
        signed: Whether negative values are allowed.
    """

    name: str
    bits: int
    signed: bool

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


@dataclass(frozen=True)
class FloatShape:
    name: str
    max: float


I8 = IntShape("i8", 8, True)
I16 = IntShape("i16", 16, True)
I32 = IntShape("i32", 32, True)
I64 = IntShape("i64", 64, True)
I128 = IntShape("i128", 128, True)
U8 = IntShape("u8", 8, False)
U16 = IntShape("u16", 16, False)
U32 = IntShape("u32", 32, False)
U64 = IntShape("u64", 64, False)
U128 = IntShape("u128", 128, False)
F32 = FloatShape("f32", 3.4028234663852886e38)

INT_SHAPES: Tuple[IntShape, ...] = (I8, I16, I32, I64, I128, U8, U16, U32, U64, U128)

TRUE_LITERALS = frozenset({"true", "yes", "on", "1"})
FALSE_LITERALS = frozenset({"false", "no", "off", "0"})

_INTEGER = re.compile(r"^[+-]?[0-9]+$")
_DURATION = re.compile(r"^([0-9]+)\s*(ns|us|ms|s|m|h|d)?$")

# highest index accepted for a list with gaps built from indexed keys
MAX_LIST_INDEX = 10_000
_DURATION_UNITS: Dict[str, Callable[[int], timedelta]] = {
    "us": lambda n: timedelta(microseconds=n),
    "ms": lambda n: timedelta(milliseconds=n),
    "s": lambda n: timedelta(seconds=n),
    "m": lambda n: timedelta(minutes=n),
    "h": lambda n: timedelta(hours=n),
    "d": lambda n: timedelta(days=n),
}

_SEQUENCE_ORIGINS = (list, tuple, collections.abc.Sequence, collections.abc.Iterable)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNION_TYPES: Tuple[Any, ...] = (Union, types.UnionType)


def shape_name(shape: Any) -> str:
    """Human readable name for a target shape."""
    if isinstance(shape, (IntShape, FloatShape)):
        return shape.name
    if get_origin(shape) is not None:
        return repr(shape).replace("typing.", "")
    if isinstance(shape, type):
        return shape.__name__
    return repr(shape)


def _text(value: Any) -> str:
    if isinstance(value, collections.abc.Mapping) or is_sequence(value):
        return str(thaw(value))
    return scalar_text(value)


def is_optional(shape: Any) -> bool:
    return get_origin(shape) in _UNION_TYPES and type(None) in get_args(shape)


class Coercer:
    """Converts resolved values to the closed set of supported shapes.

    Extra scalar shapes can be added with :meth:`register`; the converter
    receives the value's text and may raise ``ValueError`` on bad input.
    """

    def __init__(self) -> None:
        self._converters: Dict[Any, Callable[[str], Any]] = {
            Path: Path,
            Decimal: self._decimal,
            ipaddress.IPv4Address: ipaddress.IPv4Address,
            ipaddress.IPv6Address: ipaddress.IPv6Address,
            ipaddress.IPv4Network: ipaddress.IPv4Network,
            ipaddress.IPv6Network: ipaddress.IPv6Network,
        }

    def register(self, shape: Any, converter: Callable[[str], Any]) -> None:
        self._converters[shape] = converter

    def coerce(self, value: Any, key: str, shape: Any = str) -> Any:
        """Convert ``value`` read from ``key`` to ``shape``.

        Args:
            value: Resolved value (scalar, tuple or mapping).
            key: Key the value was read from, used in error messages.
            shape: Target shape, e.g. ``int``, ``U16``, ``List[str]``.

        Returns:
            The converted value.

        Raises:
            CoercionError: If the value cannot be represented in ``shape``.
            TypeError: If ``shape`` is not a supported target.
        """
        if shape is Any or shape is object:
            return thaw(value)

        origin = get_origin(shape)
        if origin in _UNION_TYPES:
            return self._union(value, key, shape)
        if isinstance(shape, IntShape):
            return self._int(value, key, shape.name, shape.min, shape.max)
        if isinstance(shape, FloatShape):
            return self._float(value, key, shape.name, shape.max)
        if shape is bool:
            return self._bool(value, key)
        if shape is int:
            return self._int(value, key, "int", None, None)
        if shape is float:
            return self._float(value, key, "float", None)
        if shape is str:
            return self._str(value, key)
        if shape is timedelta:
            return self._duration(value, key)
        if origin in _SEQUENCE_ORIGINS or shape in (list, tuple):
            return self._sequence(value, key, shape)
        if origin in _MAPPING_ORIGINS or shape is dict:
            return self._mapping(value, key, shape)
        if isinstance(shape, type) and issubclass(shape, enum.Enum):
            return self._enum(value, key, shape)
        if shape in self._converters:
            return self._convert(value, key, shape)
        raise TypeError(f"Unsupported configuration shape: {shape_name(shape)}")

    def _fail(self, key: str, shape: Any, value: Any, detail: str = "") -> CoercionError:
        name = shape if isinstance(shape, str) else shape_name(shape)
        return CoercionError(key, name, _text(value), detail)

    def _scalar_text(self, value: Any, key: str, shape: Any) -> str:
        if isinstance(value, collections.abc.Mapping) or is_sequence(value):
            raise self._fail(key, shape, value, "expected a scalar value")
        return scalar_text(value).strip()

    def _union(self, value: Any, key: str, shape: Any) -> Any:
        args = [a for a in get_args(shape) if a is not type(None)]
        if len(args) == 1:
            return self.coerce(value, key, args[0])
        for arg in args:
            try:
                return self.coerce(value, key, arg)
            except CoercionError:
                continue
        raise self._fail(key, shape, value)

    def _int(
        self, value: Any, key: str, name: str, lo: Optional[int], hi: Optional[int]
    ) -> int:
        if isinstance(value, bool):
            raise self._fail(key, name, value, "booleans are not integers")
        if isinstance(value, int):
            number = value
        elif isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                raise self._fail(key, name, value, "not an integral value")
            number = int(value)
        else:
            text = self._scalar_text(value, key, name)
            if not _INTEGER.match(text):
                raise self._fail(key, name, value)
            try:
                number = int(text, 10)
            except ValueError:
                # longer than the interpreter's int digit limit
                raise self._fail(key, name, value, "too many digits") from None
        if (lo is not None and number < lo) or (hi is not None and number > hi):
            raise self._fail(key, name, value, f"out of range [{lo}, {hi}]")
        return number

    def _float(self, value: Any, key: str, name: str, limit: Optional[float]) -> float:
        if isinstance(value, bool):
            raise self._fail(key, name, value, "booleans are not numbers")
        try:
            if isinstance(value, (int, float)):
                number = float(value)
            else:
                number = float(self._scalar_text(value, key, name))
        except (ValueError, OverflowError):
            raise self._fail(key, name, value) from None
        if not math.isfinite(number):
            raise self._fail(key, name, value, "not a finite number")
        if limit is not None and abs(number) > limit:
            raise self._fail(key, name, value, "out of range")
        return number

    def _bool(self, value: Any, key: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, float):
            raise self._fail(key, bool, value)
        text = self._scalar_text(value, key, bool).lower()
        if text in TRUE_LITERALS:
            return True
        if text in FALSE_LITERALS:
            return False
        raise self._fail(key, bool, value)

    def _str(self, value: Any, key: str) -> str:
        if isinstance(value, collections.abc.Mapping) or is_sequence(value):
            raise self._fail(key, str, value, "expected a scalar value")
        return scalar_text(value)

    def _duration(self, value: Any, key: str) -> timedelta:
        if isinstance(value, bool):
            raise self._fail(key, timedelta, value)
        if isinstance(value, (int, float)):
            if not math.isfinite(value) or value < 0:
                raise self._fail(key, timedelta, value)
            return timedelta(seconds=value)
        text = self._scalar_text(value, key, timedelta)
        match = _DURATION.match(text)
        if not match:
            raise self._fail(key, timedelta, value)
        amount = int(match.group(1))
        unit = match.group(2) or "s"
        try:
            if unit == "ns":
                if amount % 1000:
                    raise self._fail(
                        key, timedelta, value, "sub-microsecond precision is not representable"
                    )
                return timedelta(microseconds=amount // 1000)
            return _DURATION_UNITS[unit](amount)
        except OverflowError:
            raise self._fail(key, timedelta, value, "out of range") from None

    def _sequence(self, value: Any, key: str, shape: Any) -> Any:
        origin = get_origin(shape) or shape
        args = get_args(shape)
        fixed: Optional[Tuple[Any, ...]] = None
        if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
            fixed = args
            element: Any = Any
        else:
            element = args[0] if args else Any

        items = self._sequence_items(value, key, shape, element)
        if fixed is not None:
            if len(items) != len(fixed):
                raise self._fail(key, shape, value, f"expected {len(fixed)} items")
            return tuple(
                self.coerce(item, join_key(key, str(i)), fixed[i]) for i, item in enumerate(items)
            )

        result: List[Any] = []
        for i, item in enumerate(items):
            item_key = join_key(key, str(i))
            if item is None:
                if not is_optional(element):
                    raise self._fail(item_key, element, "", "missing list element")
                result.append(None)
            else:
                result.append(self.coerce(item, item_key, element))
        return tuple(result) if origin is tuple else result

    def _sequence_items(self, value: Any, key: str, shape: Any, element: Any) -> List[Any]:
        if is_sequence(value):
            return list(value)
        if isinstance(value, collections.abc.Mapping):
            if not value:
                return []
            if not all(k.isascii() and k.isdigit() for k in value):
                raise self._fail(key, shape, value, "mapping keys are not list indices")
            indexed = {int(k): v for k, v in value.items()}
            last = max(indexed)
            if last >= len(indexed):
                if not is_optional(element):
                    missing = next(i for i in range(last + 1) if i not in indexed)
                    raise self._fail(
                        join_key(key, str(missing)), element, "", "missing list element"
                    )
                if last > MAX_LIST_INDEX:
                    raise self._fail(
                        key, shape, value, f"list index {last} exceeds {MAX_LIST_INDEX}"
                    )
            return [indexed.get(i) for i in range(last + 1)]
        raise self._fail(key, shape, value, "expected a list")

    def _mapping(self, value: Any, key: str, shape: Any) -> Dict[Any, Any]:
        args = get_args(shape)
        key_shape, value_shape = (args[0], args[1]) if len(args) == 2 else (str, Any)
        if not isinstance(value, collections.abc.Mapping):
            raise self._fail(key, shape, value, "expected a mapping")
        result: Dict[Any, Any] = {}
        for member, item in value.items():
            member_key = join_key(key, member)
            out_key = member if key_shape in (str, Any) else self.coerce(member, member_key, key_shape)
            result[out_key] = self.coerce(item, member_key, value_shape)
        return result

    def _enum(self, value: Any, key: str, shape: Any) -> Any:
        text = self._scalar_text(value, key, shape)
        for member in shape:
            if member.name == text:
                return member
        for member in shape:
            if scalar_text(member.value) == text:
                return member
        raise self._fail(key, shape, value)

    def _convert(self, value: Any, key: str, shape: Any) -> Any:
        text = self._scalar_text(value, key, shape)
        try:
            return self._converters[shape](text)
        except (ValueError, TypeError) as exc:
            raise self._fail(key, shape, value, str(exc)) from None

    @staticmethod
    def _decimal(text: str) -> Decimal:
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValueError("invalid decimal") from None
        if not number.is_finite():
            raise ValueError("not a finite number")
        return number


_default = Coercer()


def coerce(value: Any, key: str, shape: Any = str) -> Any:
    """Convert with the module-level default :class:`Coercer`."""
    return _default.coerce(value, key, shape)

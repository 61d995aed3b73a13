from __future__ import annotations

import secrets
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.tree import normalize_key
from ..core.types import RawValue, RefreshOutcome


def _unsigned(bits: int) -> Callable[[], int]:
    return lambda: secrets.randbits(bits)


def _signed(bits: int) -> Callable[[], int]:
    return lambda: secrets.randbits(bits) - (1 << (bits - 1))


GENERATORS: Dict[str, Callable[[], Any]] = {
    "u8": _unsigned(8),
    "u16": _unsigned(16),
    "u32": _unsigned(32),
    "u64": _unsigned(64),
    "u128": _unsigned(128),
    "i8": _signed(8),
    "i16": _signed(16),
    "i32": _signed(32),
    "i64": _signed(64),
    "i128": _signed(128),
    "uuid": lambda: str(uuid.uuid4()),
    "string": lambda: secrets.token_hex(16),
}


class RandomSource:
    """Serves ``random.<kind>`` keys with a fresh value on every read.

    Snapshots never capture this source, so two reads of ``random.u32``
    return independent values.
    """

    def __init__(self, name: str = "random", namespace: str = "random"):
        self.name = name
        self.namespace = namespace

    def get_raw(self, key: str) -> Optional[RawValue]:
        head, _, kind = normalize_key(key).partition(".")
        if head != self.namespace:
            return None
        generator = GENERATORS.get(kind)
        return generator() if generator else None

    def keys(self) -> List[str]:
        return [f"{self.namespace}.{kind}" for kind in GENERATORS]

    def is_refreshable(self) -> bool:
        return False

    def try_refresh(self) -> RefreshOutcome:
        return RefreshOutcome.unchanged()

    def current(self) -> Optional[Mapping[str, Any]]:
        return None

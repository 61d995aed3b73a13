"""Expansion of ``${key:default}`` placeholders embedded in string values.

Placeholders reference other keys, optionally with a literal default used
only when the referenced key is absent from every source::

    app.name = demo
    app.id   = ${random.u32}
    app.desc = ${app.name} (${app.id}) on ${app.host:localhost}

Both the key and the default may themselves contain placeholders. A
backslash escapes the next character, so ``\\${x}`` is the literal ``${x}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Tuple, Union

from .errors import (
    CoercionError,
    PlaceholderCycleError,
    PlaceholderSyntaxError,
    PlaceholderUnresolvedError,
)
from .tree import is_sequence, join_key, normalize_key, scalar_text
from .types import RawValue

if TYPE_CHECKING:
    from .snapshot import Snapshot


@dataclass(frozen=True)
class Reference:
    """A ``${...}`` node.

    Attributes:
        key: Unexpanded key text, possibly holding nested placeholders.
        default: Unexpanded default text, or None when no ``:`` was given.
        position: Offset of the ``$`` in the parsed text.
    """

    key: str
    default: Optional[str]
    position: int


@dataclass(frozen=True)
class PlaceholderExpr:
    """Parsed scalar: literal spans interleaved with references."""

    parts: Tuple[Union[str, Reference], ...]

    @property
    def references(self) -> List[Reference]:
        return [p for p in self.parts if isinstance(p, Reference)]

    @property
    def is_literal(self) -> bool:
        return not self.references


def _find_close(text: str, start: int) -> int:
    depth = 1
    i = start
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == "$" and text.startswith("${", i):
            depth += 1
            i += 2
            continue
        if c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _split_body(body: str) -> Tuple[str, Optional[str]]:
    i = 0
    n = len(body)
    while i < n:
        c = body[i]
        if c == "\\":
            i += 2
            continue
        if c == "$" and body.startswith("${", i):
            end = _find_close(body, i + 2)
            if end < 0:
                break
            i = end + 1
            continue
        if c == ":":
            return body[:i], body[i + 1 :]
        i += 1
    return body, None


@lru_cache(maxsize=1024)
def _parse(text: str) -> PlaceholderExpr:
    parts: List[Union[str, Reference]] = []
    buf: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            if i + 1 >= n:
                raise PlaceholderSyntaxError(text, i)
            buf.append(text[i + 1])
            i += 2
            continue
        if c == "$" and text.startswith("${", i):
            end = _find_close(text, i + 2)
            if end < 0:
                raise PlaceholderSyntaxError(text, i)
            key, default = _split_body(text[i + 2 : end])
            if not key.strip():
                raise PlaceholderSyntaxError(text, i)
            if buf:
                parts.append("".join(buf))
                buf = []
            parts.append(Reference(key=key, default=default, position=i))
            i = end + 1
            continue
        buf.append(c)
        i += 1
    if buf:
        parts.append("".join(buf))
    return PlaceholderExpr(tuple(parts))


def parse(text: str, key: Optional[str] = None) -> PlaceholderExpr:
    """Parse ``text`` into literal spans and references.

    Raises:
        PlaceholderSyntaxError: On an unterminated ``${``, an empty key, or
            a trailing backslash.
    """
    try:
        return _parse(text)
    except PlaceholderSyntaxError as exc:
        raise PlaceholderSyntaxError(exc.raw_text, exc.position, key) from None


class PlaceholderResolver:
    """Expands placeholders against a snapshot.

    Each top-level call tracks the chain of keys currently being expanded;
    meeting a key already on the chain is a cycle, so expansion always
    terminates.
    """

    def expand(self, raw: RawValue, snapshot: "Snapshot", key: str = "") -> Any:
        """Expand every placeholder in ``raw``.

        Args:
            raw: Value returned by the snapshot for ``key``.
            snapshot: Snapshot used for every nested lookup.
            key: Key ``raw`` was read from; seeds the cycle chain.

        Returns:
            Value of the same shape with all placeholders substituted.
        """
        key = normalize_key(key)
        return self._expand_value(raw, snapshot, key, (key,) if key else ())

    def _expand_value(
        self, raw: Any, snapshot: "Snapshot", key: str, chain: Tuple[str, ...]
    ) -> Any:
        if isinstance(raw, str):
            return self._expand_text(raw, snapshot, key, chain)
        if isinstance(raw, Mapping):
            expanded = {}
            for member, value in raw.items():
                member_key = join_key(key, member)
                expanded[member] = self._expand_value(
                    value, snapshot, member_key, chain + (member_key,)
                )
            return MappingProxyType(expanded)
        if is_sequence(raw):
            items = []
            for index, value in enumerate(raw):
                member_key = join_key(key, str(index))
                items.append(
                    self._expand_value(value, snapshot, member_key, chain + (member_key,))
                )
            return tuple(items)
        return raw

    def _expand_text(
        self, text: str, snapshot: "Snapshot", key: str, chain: Tuple[str, ...]
    ) -> Any:
        if "$" not in text and "\\" not in text:
            return text
        expr = parse(text, key)
        if expr.is_literal:
            return "".join(expr.parts)  # type: ignore[arg-type]
        if len(expr.parts) == 1:
            # a value that is exactly one reference keeps the referenced shape
            return self._resolve_reference(expr.parts[0], snapshot, key, chain)  # type: ignore[arg-type]

        out: List[str] = []
        for part in expr.parts:
            if isinstance(part, str):
                out.append(part)
                continue
            value = self._resolve_reference(part, snapshot, key, chain)
            if isinstance(value, Mapping) or is_sequence(value):
                raise CoercionError(
                    key, "str", text, f"'{part.key}' holds a composite value"
                )
            out.append(scalar_text(value))
        return "".join(out)

    def _resolve_reference(
        self, ref: Reference, snapshot: "Snapshot", owner: str, chain: Tuple[str, ...]
    ) -> Any:
        key_text = self._expand_text(ref.key, snapshot, owner, chain)
        if not isinstance(key_text, str):
            raise CoercionError(owner, "str", ref.key, "placeholder key is not text")
        ref_key = normalize_key(key_text.strip())
        if not ref_key:
            raise PlaceholderSyntaxError(ref.key, ref.position, owner)
        if ref_key in chain:
            raise PlaceholderCycleError(chain + (ref_key,))

        raw = snapshot.resolve_raw(ref_key)
        if raw is None:
            if ref.default is None:
                raise PlaceholderUnresolvedError(ref_key, owner or None)
            return self._expand_text(ref.default, snapshot, owner, chain)
        return self._expand_value(raw, snapshot, ref_key, chain + (ref_key,))

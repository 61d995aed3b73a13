from __future__ import annotations

import os
from typing import Dict, Mapping, Optional

from ..core.source import TreeSource


def env_key_to_config_key(env_key: str, prefix: str) -> Optional[str]:
    """Map ``PREFIX_A_B`` to ``a.b``; None when the prefix does not match.

    The prefix is matched case-sensitively in its upper-cased form.
    """
    marker = f"{prefix.upper()}_"
    if not env_key.startswith(marker):
        return None
    rest = env_key[len(marker) :]
    parts = [p for p in rest.lower().split("_") if p]
    if not parts:
        return None
    return ".".join(parts)


class PrefixEnvSource(TreeSource):
    """Environment variables sharing a prefix, e.g. ``APP_SERVER_PORT``.

    Reads ``os.environ`` unless a mapping is injected. The environment is
    read once at construction; refreshing re-reads it.
    """

    def __init__(
        self,
        prefix: str,
        environ: Optional[Mapping[str, str]] = None,
        name: Optional[str] = None,
    ):
        if not prefix:
            raise ValueError("prefix must not be empty")
        super().__init__(name or f"env:{prefix.upper()}")
        self.prefix = prefix
        self._environ = environ
        self.load()

    def _fetch(self) -> Dict[str, str]:
        environ = os.environ if self._environ is None else self._environ
        flat: Dict[str, str] = {}
        for env_key in sorted(environ):
            key = env_key_to_config_key(env_key, self.prefix)
            if key is not None:
                flat[key] = environ[env_key]
        return flat

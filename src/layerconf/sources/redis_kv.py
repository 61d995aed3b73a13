from __future__ import annotations

from typing import Any, Dict, List, Optional

import redis

from ..core.source import TreeSource


class RedisSource(TreeSource):
    """String keys stored in Redis, optionally under a common prefix.

    ``{prefix}app.port`` is served as ``app.port``. When ``separator`` is
    given (e.g. ``":"``), it is translated to ``.`` so ``app:port`` works too.
    """

    refreshable = True
    batch_size = 500

    def __init__(
        self,
        uri: str,
        prefix: str = "",
        name: Optional[str] = None,
        separator: str = ".",
        client: Optional[Any] = None,
    ):
        super().__init__(name or f"redis:{uri}")
        self.uri = uri
        self.prefix = prefix
        self.separator = separator
        self.client = client if client is not None else redis.Redis.from_url(uri, decode_responses=True)
        self.load()

    def _unprefixed(self, key: str) -> str:
        if self.prefix and key.startswith(self.prefix):
            key = key[len(self.prefix) :]
        if self.separator != ".":
            key = key.replace(self.separator, ".")
        return key

    def _fetch(self) -> Dict[str, Any]:
        keys: List[str] = sorted(self.client.scan_iter(match=f"{self.prefix}*"))
        kv: Dict[str, Any] = {}
        for start in range(0, len(keys), self.batch_size):
            batch = keys[start : start + self.batch_size]
            for k, v in zip(batch, self.client.mget(batch)):
                # keys can expire between SCAN and MGET
                if v is not None:
                    kv[self._unprefixed(k)] = v
        return kv

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Mapping, Optional

from ..core.source import TreeSource
from ..core.tree import build_tree, set_path, split_key


class KeyValueSource(TreeSource):
    """Inline key-value source.

    Accepts flat dotted keys (``{"app.port": "8080"}``), nested mappings, or
    a mix of both. Values added with :meth:`set` are staged and become
    visible at the next refresh.
    """

    refreshable = True

    def __init__(self, values: Optional[Mapping[str, Any]] = None, name: Optional[str] = None):
        super().__init__(name or "kv")
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = build_tree(values or {})
        self.load()

    def set(self, key: str, value: Any) -> None:
        path = split_key(key)
        if not path:
            raise ValueError("key must not be empty")
        if isinstance(value, Mapping):
            value = build_tree(value)
        with self._lock:
            set_path(self._data, path, value)

    def _fetch(self) -> Mapping[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)

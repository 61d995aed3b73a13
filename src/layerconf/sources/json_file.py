from __future__ import annotations

import json
from typing import Any, Mapping

from .file import FileSource


class JsonFileSource(FileSource):
    format = "json"

    def _parse(self, text: str) -> Mapping[str, Any]:
        data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: top level must be an object")
        return data

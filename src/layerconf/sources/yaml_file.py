from __future__ import annotations

from typing import Any, Mapping

import yaml

from .file import FileSource


class YamlFileSource(FileSource):
    format = "yaml"

    def _parse(self, text: str) -> Mapping[str, Any]:
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: top level must be a mapping")
        return data

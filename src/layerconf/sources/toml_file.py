from __future__ import annotations

import tomllib
from typing import Any, Mapping

from .file import FileSource


class TomlFileSource(FileSource):
    format = "toml"

    def _parse(self, text: str) -> Mapping[str, Any]:
        return tomllib.loads(text)

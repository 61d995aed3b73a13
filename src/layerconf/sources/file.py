"""Base class and format dispatch for file-backed sources."""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..core.errors import UnsupportedSourceError
from ..core.source import TreeSource

# format -> (module, class)
FORMATS: Dict[str, Tuple[str, str]] = {
    "toml": ("toml_file", "TomlFileSource"),
    "yaml": ("yaml_file", "YamlFileSource"),
    "json": ("json_file", "JsonFileSource"),
    "ini": ("ini_file", "IniFileSource"),
    "env": ("env_file", "EnvFileSource"),
}

EXTENSIONS: Dict[str, str] = {
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".ini": "ini",
    ".cfg": "ini",
    ".env": "env",
}


class FileSource(TreeSource):
    """A configuration file parsed into a tree.

    Refreshing compares the file's modification time and size first and
    only re-parses when either moved. A missing optional file serves an
    empty tree; a missing required file is a load or refresh error.
    """

    refreshable = True
    format = ""

    def __init__(
        self,
        path: Union[str, Path],
        name: Optional[str] = None,
        required: bool = True,
    ):
        self.path = Path(path)
        super().__init__(name or f"{self.format}:{self.path.name}")
        self.required = required
        self._signature: Optional[Tuple[int, int]] = None
        self.load()

    def _parse(self, text: str) -> Mapping[str, Any]:
        raise NotImplementedError

    def _stat(self) -> Optional[Tuple[int, int]]:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def _fetch(self) -> Mapping[str, Any]:
        signature = self._stat()
        if signature is None:
            if self.required:
                raise FileNotFoundError(f"Configuration file not found: {self.path}")
            self._signature = None
            return {}
        text = self.path.read_text(encoding="utf-8")
        data = self._parse(text)
        self._signature = signature
        return data

    def _fetch_if_modified(self) -> Optional[Mapping[str, Any]]:
        signature = self._stat()
        if signature == self._signature and signature is not None:
            return None
        if signature is None and self._signature is None and not self.required:
            return None
        return self._fetch()


def format_for(path: Union[str, Path]) -> Optional[str]:
    p = Path(path)
    if p.name == ".env":
        return "env"
    return EXTENSIONS.get(p.suffix.lower())


def open_file_source(
    path: Union[str, Path],
    required: bool = True,
    name: Optional[str] = None,
    format: Optional[str] = None,
) -> FileSource:
    """Create the file source matching ``format`` or the path's extension.

    Raises:
        UnsupportedSourceError: If no format matches.
        SourceLoadError: If the file cannot be read or parsed.
    """
    fmt = format or format_for(path)
    if fmt not in FORMATS:
        raise UnsupportedSourceError(str(path))
    module_name, class_name = FORMATS[fmt]
    # lazy so PyYAML is only imported when a YAML file is used
    module = importlib.import_module(f"{__package__}.{module_name}")
    cls = getattr(module, class_name)
    return cls(path, name=name, required=required)

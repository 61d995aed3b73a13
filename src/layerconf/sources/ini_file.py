from __future__ import annotations

import configparser
from typing import Dict

from .file import FileSource


class IniFileSource(FileSource):
    """INI file flattened to ``section.key``.

    Options in ``[DEFAULT]`` are inherited by every section, as
    configparser does, and also exposed at the top level.
    """

    format = "ini"

    def _parse(self, text: str) -> Dict[str, str]:
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # keep key case
        parser.read_string(text, source=str(self.path))
        flat: Dict[str, str] = dict(parser.defaults())
        for section in parser.sections():
            for key, value in parser.items(section):
                flat[f"{section}.{key}"] = value
        return flat

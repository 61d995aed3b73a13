from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from .file import FileSource

_LINE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")


def parse_line(line: str) -> Optional[Tuple[str, str]]:
    """Parse a single ``KEY=VALUE`` line from a .env file.

    Args:
        line: Line to parse

    Returns:
        Tuple of (key, value) or None if line should be ignored
    """
    line = line.strip()

    # Skip empty lines and comments
    if not line or line.startswith("#"):
        return None

    match = _LINE.match(line)
    if not match:
        return None

    key, value = match.groups()

    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
        value = (
            value.replace('\\"', '"')
            .replace("\\n", "\n")
            .replace("\\r", "\r")
            .replace("\\t", "\t")
        )
    elif len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        value = value[1:-1]

    return key, value


def env_name_to_key(name: str) -> str:
    """``SERVER_PORT`` -> ``server.port``."""
    return ".".join(p for p in name.lower().split("_") if p)


class EnvFileSource(FileSource):
    """``.env`` file; variable names map to keys like environment variables.

    ``${...}`` in values is left for the engine's placeholder expansion.
    """

    format = "env"

    def _parse(self, text: str) -> Dict[str, str]:
        flat: Dict[str, str] = {}
        for line in text.splitlines():
            parsed = parse_line(line)
            if parsed:
                key, value = parsed
                flat[env_name_to_key(key)] = value
        return flat

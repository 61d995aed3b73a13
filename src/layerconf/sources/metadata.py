from __future__ import annotations

from importlib import metadata
from typing import Dict


def package_metadata(dist: str, prefix: str = "pkg") -> Dict[str, str]:
    """Build-time facts about an installed distribution.

    Meant to be passed to ``Configuration.register_kv`` so values such as
    ``${pkg.version}`` can be referenced from other sources.

    Raises:
        importlib.metadata.PackageNotFoundError: If ``dist`` is not installed.
    """
    meta = metadata.metadata(dist)
    values = {
        "name": meta.get("Name", dist),
        "version": metadata.version(dist),
        "summary": meta.get("Summary", ""),
        "author": meta.get("Author") or meta.get("Author-email", ""),
        "license": meta.get("License", ""),
        "homepage": meta.get("Home-page", ""),
        "requires_python": meta.get("Requires-Python", ""),
    }
    return {f"{prefix}.{k}": v or "" for k, v in values.items()}

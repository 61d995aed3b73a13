"""Predefined source stack for applications.

Layers, highest priority first:

1. package metadata, when :meth:`PredefinedBuilder.set_package` was used
2. overrides set in code or from the command line
3. random values (disable with ``app.sources.random.enabled=false``)
4. environment variables with prefix ``CFG`` (or ``CFG_ENV_PREFIX``)
5. profile files ``${app.dir}/${app.name}-${app.profile}.<ext>``
6. base files ``${app.dir}/${app.name}.<ext>``

Files are optional; each format can be disabled with
``app.sources.<format>.enabled=false``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import structlog

from .binding import config_field, config_prefix, from_config
from .core.configuration import Configuration
from .sources.file import FORMATS
from .sources.metadata import package_metadata

logger = structlog.get_logger(__name__)

DEFAULT_ENV_PREFIX = "CFG"


@config_prefix("app")
@dataclass
class AppOptions:
    name: str = "app"
    dir: Optional[str] = None
    profile: Optional[str] = None


@config_prefix("app.sources")
@dataclass
class SourceOptions:
    random: bool = config_field(name="random.enabled", default=True)
    toml: bool = config_field(name="toml.enabled", default=True)
    yaml: bool = config_field(name="yaml.enabled", default=True)
    json: bool = config_field(name="json.enabled", default=True)
    ini: bool = config_field(name="ini.enabled", default=True)
    env: bool = config_field(name="env.enabled", default=True)

    def enabled_formats(self) -> List[str]:
        return [fmt for fmt in FORMATS if getattr(self, fmt)]


class PredefinedBuilder:
    """Builds a Configuration with the conventional source stack.

    Example:
        >>> config = (
        ...     PredefinedBuilder()
        ...     .set_name("billing")
        ...     .set_profile("prod")
        ...     .init()
        ... )
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ
        self._overrides: Dict[str, Any] = {}
        self._env_prefix: Optional[str] = None
        self._package: Optional[str] = None
        self._init_hook: Optional[Callable[[Configuration], None]] = None

    def set(self, key: str, value: Any) -> "PredefinedBuilder":
        self._overrides[key] = value
        return self

    def set_name(self, name: str) -> "PredefinedBuilder":
        return self.set("app.name", name)

    def set_dir(self, path: Union[str, Path]) -> "PredefinedBuilder":
        return self.set("app.dir", str(path))

    def set_profile(self, profile: str) -> "PredefinedBuilder":
        return self.set("app.profile", profile)

    def set_prefix_env(self, prefix: str) -> "PredefinedBuilder":
        self._env_prefix = prefix
        return self

    def set_package(self, dist: str) -> "PredefinedBuilder":
        """Expose ``pkg.*`` metadata of an installed distribution."""
        self._package = dist
        return self

    def set_init(self, hook: Callable[[Configuration], None]) -> "PredefinedBuilder":
        """Run ``hook`` once environment variables are registered, before files."""
        self._init_hook = hook
        return self

    def _env_prefix_for(self, config: Configuration) -> str:
        environ = os.environ if self._environ is None else self._environ
        return (
            self._env_prefix
            or config.get_or("env.prefix", None)
            or environ.get(f"{DEFAULT_ENV_PREFIX}_ENV_PREFIX")
            or DEFAULT_ENV_PREFIX
        )

    def _register_files(self, config: Configuration, base: Path, formats: List[str]) -> None:
        for fmt in formats:
            # every format shares the stem; .env files are "<stem>.env"
            path = base.parent / f"{base.name}.{fmt}"
            config.register_file(path, required=False, name=f"{fmt}:{path}", format=fmt)

    def init(self) -> Configuration:
        """Build the Configuration.

        Raises:
            SourceLoadError: If a present file cannot be parsed.
            CoercionError: If an ``app.*`` setting has the wrong type.
        """
        config = Configuration()

        if self._package:
            config.register_kv("package", package_metadata(self._package))
        config.register_kv("overrides", self._overrides)

        options = from_config(config, SourceOptions)
        if options.random:
            config.register_random()

        prefix = self._env_prefix_for(config)
        config.register_prefix_env(prefix, environ=self._environ)

        if self._init_hook is not None:
            self._init_hook(config)
            logger.debug("predefined_init_hook_completed")

        app = from_config(config, AppOptions)
        base = Path(app.dir) if app.dir else Path.cwd()
        formats = options.enabled_formats()
        if app.profile:
            self._register_files(config, base / f"{app.name}-{app.profile}", formats)
        self._register_files(config, base / app.name, formats)

        logger.info(
            "predefined_configuration_ready",
            app=app.name,
            profile=app.profile,
            sources=config.source_names(),
        )
        return config

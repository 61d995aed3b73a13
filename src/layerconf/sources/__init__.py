from .environment import PrefixEnvSource, env_key_to_config_key
from .file import FileSource, open_file_source
from .memory import KeyValueSource
from .metadata import package_metadata
from .random import RandomSource

__all__ = [
    "KeyValueSource",
    "PrefixEnvSource",
    "RandomSource",
    "FileSource",
    "open_file_source",
    "env_key_to_config_key",
    "package_metadata",
]

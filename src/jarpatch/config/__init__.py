"""Config module exports."""

from jarpatch.config.loader import load_config, require_directories
from jarpatch.config.models import (
    CacheConfig,
    DecompilerConfig,
    GitConfig,
    JarPatchConfig,
    LoggingConfig,
    NetworkConfig,
    ProjectConfig,
)

__all__ = [
    "load_config",
    "require_directories",
    "JarPatchConfig",
    "CacheConfig",
    "DecompilerConfig",
    "GitConfig",
    "LoggingConfig",
    "NetworkConfig",
    "ProjectConfig",
]

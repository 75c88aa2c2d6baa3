"""Configuration models and loaders."""

from .configuration import Configuration
from .pydantic_config import (
    BookmarkTreeConfig,
    ConfigurationManager,
    LoggingConfig,
    MergeConfig,
    NetworkConfig,
    StorageConfig,
    format_config_error,
)

__all__ = [
    "BookmarkTreeConfig",
    "Configuration",
    "ConfigurationManager",
    "LoggingConfig",
    "MergeConfig",
    "NetworkConfig",
    "StorageConfig",
    "format_config_error",
]

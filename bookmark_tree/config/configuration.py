"""
Configuration wrapper for the bookmark tree.

Thin layer over the pydantic models that the CLI and the service share.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from .pydantic_config import BookmarkTreeConfig, ConfigurationManager


class Configuration:
    """Loads configuration once and exposes the values callers need."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Optional path to user configuration file (TOML/JSON)
        """
        self._manager = ConfigurationManager(config_path)
        self._config = self._manager.config

    @property
    def config(self) -> BookmarkTreeConfig:
        """Get the underlying Pydantic configuration."""
        return self._config

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """
        Update configuration from command-line arguments.

        Args:
            args: Dictionary of parsed arguments
        """
        self._manager.update_from_cli_args(args)
        self._config = self._manager.config

    def get_data_file(self) -> Path:
        return self._config.storage.data_file

    def get_backup_dir(self) -> Path:
        """Snapshot directory, next to the data file unless configured."""
        storage = self._config.storage
        return storage.backup_dir or storage.data_file.parent / "backups"


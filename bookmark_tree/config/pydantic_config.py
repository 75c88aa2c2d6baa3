"""
Pydantic-based configuration system for the bookmark tree.

Settings are grouped by concern (storage, network, merge, logging) and can
be loaded from a TOML or JSON file, with environment and command-line
overrides applied on top.
"""

import json
import os
import sys
import warnings
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..utils.error_handler import ConfigurationError


class StorageConfig(BaseModel):
    """Bookmark document and backup settings."""

    data_file: Path = Field(
        default=Path("bookmarks.json"),
        description="JSON document holding the bookmark tree",
    )
    backup_dir: Optional[Path] = Field(
        default=None,
        description="Backup directory (defaults to 'backups' next to the data file)",
    )
    backup_retention: Optional[int] = Field(
        default=None,
        ge=1,
        le=10000,
        description="Number of backups to keep; unset keeps every backup",
    )
    backup_before_replace: bool = Field(
        default=True,
        description="Take a backup before an import replaces the whole tree",
    )

    @field_validator("data_file", "backup_dir", mode="before")
    @classmethod
    def validate_paths(cls, v):
        """Ensure paths are Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v


class NetworkConfig(BaseModel):
    """Dead-link checking settings."""

    timeout: float = Field(
        default=10.0,
        ge=1,
        le=300,
        description="Per-probe timeout in seconds",
    )
    concurrent_requests: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum concurrent probes",
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; bookmark-tree link checker)",
        min_length=1,
        description="User-Agent header sent with each probe",
    )

    @field_validator("concurrent_requests")
    @classmethod
    def validate_concurrent_requests(cls, v):
        """Provide performance warnings for extreme values."""
        if v > 25:
            warnings.warn(
                f"High concurrent requests ({v}) may trigger rate limiting "
                f"from websites. Consider using 10-15.",
                UserWarning,
            )
        return v


class MergeConfig(BaseModel):
    """Import merge settings."""

    dedupe_within_batch: bool = Field(
        default=False,
        description="Reject a second new bookmark with the same URL in one import",
    )


class LoggingConfig(BaseModel):
    """Logging settings."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Root log level"
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file name under logs/; unset disables file logging"
    )
    console_output: bool = Field(default=True, description="Log to the console")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v


class BookmarkTreeConfig(BaseModel):
    """Main configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tag_suggestions: bool = Field(
        default=True, description="Offer tag suggestions for new bookmarks"
    )


ENV_OVERRIDES = {
    "BOOKMARK_TREE_DATA_FILE": ("storage", "data_file"),
    "BOOKMARK_TREE_BACKUP_DIR": ("storage", "backup_dir"),
    "BOOKMARK_TREE_LOG_LEVEL": ("logging", "log_level"),
}


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file (TOML or JSON)
        """
        self._config: Optional[BookmarkTreeConfig] = None
        self._load_configuration(Path(config_path) if config_path else None)

    def _get_default_config_paths(self) -> List[Path]:
        """Get list of default configuration file paths to try."""
        if getattr(sys, "frozen", False):
            app_dir = Path(sys.executable).parent
        else:
            app_dir = Path.cwd()

        return [
            app_dir / "bookmark_tree.toml",
            app_dir / "bookmark_tree.json",
            Path.home() / ".config" / "bookmark_tree" / "config.toml",
        ]

    def _load_configuration(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from file or use defaults."""
        config_data: Dict[str, Any] = {}

        if config_path:
            config_data = self._load_config_file(config_path)
        else:
            for path in self._get_default_config_paths():
                if path.exists():
                    config_data = self._load_config_file(path)
                    break

        self._apply_env_overrides(config_data)

        try:
            self._config = BookmarkTreeConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(format_config_error(e)) from e

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from TOML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(
                format_config_error(
                    FileNotFoundError(2, "No such file", str(config_path))
                )
            )

        try:
            if config_path.suffix.lower() == ".toml":
                return toml.load(config_path)
            elif config_path.suffix.lower() == ".json":
                with open(config_path, "r", encoding="utf-8") as f:
                    return json.load(f)
        except (OSError, ValueError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {config_path}: {e}"
            ) from e

        raise ConfigurationError(
            f"Unsupported configuration file format: {config_path.suffix}"
        )

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> None:
        """Apply environment variable overrides on top of file settings."""
        for env_name, (section, option) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                config_data.setdefault(section, {})[option] = value

    def update_from_cli_args(self, args: Dict[str, Any]) -> None:
        """Update configuration from command-line arguments."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")

        config_dict = self._config.model_dump()

        if args.get("data_file"):
            config_dict["storage"]["data_file"] = args["data_file"]

        if args.get("backup_dir"):
            config_dict["storage"]["backup_dir"] = args["backup_dir"]

        if args.get("verbose"):
            config_dict["logging"]["log_level"] = "DEBUG"

        if args.get("timeout"):
            config_dict["network"]["timeout"] = args["timeout"]

        if args.get("concurrency"):
            config_dict["network"]["concurrent_requests"] = args["concurrency"]

        try:
            self._config = BookmarkTreeConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(format_config_error(e)) from e

    @property
    def config(self) -> BookmarkTreeConfig:
        """Get the current configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")
        return self._config

    @staticmethod
    def create_sample_config(output_path: Path, format: str = "toml") -> None:
        """Create a sample configuration file."""
        sample_config = {
            "storage": {
                "data_file": "bookmarks.json",
                "backup_dir": "backups",
                "backup_before_replace": True,
            },
            "network": {"timeout": 10, "concurrent_requests": 10, "verify_ssl": True},
            "merge": {"dedupe_within_batch": False},
            "logging": {"log_level": "INFO", "console_output": True},
            "tag_suggestions": True,
        }

        if format.lower() == "toml":
            with open(output_path, "w", encoding="utf-8") as f:
                toml.dump(sample_config, f)
        elif format.lower() == "json":
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(sample_config, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")


class ConfigurationErrorFormatter:
    """Formats Pydantic validation errors into user-friendly messages."""

    @staticmethod
    def format_validation_error(error: ValidationError) -> str:
        """
        Convert Pydantic ValidationError into a user-friendly error message.

        Args:
            error: Pydantic ValidationError instance

        Returns:
            Formatted error message
        """
        error_messages = []

        for error_detail in error.errors():
            location = ConfigurationErrorFormatter._format_error_location(
                error_detail["loc"]
            )
            error_messages.append(
                ConfigurationErrorFormatter._format_by_error_type(
                    location,
                    error_detail["type"],
                    error_detail,
                    error_detail.get("input", "N/A"),
                )
            )

        header = "Configuration Validation Failed:\n"
        separator = "-" * 60 + "\n"
        footer = (
            "\n\nTips:\n"
            "- Check the configuration file format (TOML or JSON)\n"
            "- Ensure numeric values are within the allowed ranges\n"
            "- Use 'bookmark-tree create-config' to generate a sample file"
        )

        return header + separator + "\n".join(error_messages) + footer

    @staticmethod
    def _format_error_location(location: tuple) -> str:
        """Format the error location path."""
        if not location:
            return "Configuration"

        path_parts = []
        for part in location:
            if isinstance(part, str):
                path_parts.append(part)
            else:
                path_parts.append(f"[{part}]")

        return " -> ".join(path_parts)

    @staticmethod
    def _format_by_error_type(
        location: str, error_type: str, error_detail: dict, input_value
    ) -> str:
        """Format error message based on Pydantic error type."""
        if error_type == "missing":
            return f"x {location}: Required field is missing"

        if error_type in (
            "greater_than_equal",
            "less_than_equal",
            "greater_than",
            "less_than",
        ):
            ctx = error_detail.get("ctx", {})
            limit = next(iter(ctx.values()), "limit")
            if isinstance(limit, (int, float)):
                limit = f"{limit:g}"
            operator = {
                "greater_than_equal": ">=",
                "less_than_equal": "<=",
                "greater_than": ">",
                "less_than": "<",
            }[error_type]
            return f"x {location}: Value must be {operator} {limit} (got: {input_value})"

        if error_type == "literal_error":
            expected = error_detail.get("ctx", {}).get("expected", "valid option")
            return f"x {location}: Must be one of {expected} (got: {input_value})"

        msg = error_detail.get("msg", "Invalid configuration value")
        return f"x {location}: {msg} (got: {input_value})"


def format_config_error(error: Exception) -> str:
    """
    Format any configuration-related error into a user-friendly message.

    Args:
        error: Exception that occurred during configuration

    Returns:
        Formatted error message
    """
    if isinstance(error, ValidationError):
        return ConfigurationErrorFormatter.format_validation_error(error)

    if isinstance(error, FileNotFoundError):
        return (
            f"Configuration File Not Found:\n"
            f"x Could not find configuration file: {error.filename}\n\n"
            f"Solutions:\n"
            f"- Create a configuration file using: bookmark-tree create-config\n"
            f"- Use default configuration by omitting the --config parameter"
        )

    return f"Unexpected Configuration Error:\nx {str(error)}"

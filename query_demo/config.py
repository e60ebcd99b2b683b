"""
Configuration management for the Query Demo system.

This module provides configuration classes and utilities for managing
export behavior, the REST API listener, and logging parameters.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
import json

from .errors import ConfigurationError, create_error_context


DEFAULT_EXPORT_COLUMNS = ["id", "name", "category", "score"]

_NUMERIC_FIELDS = {
    ("export", "release_delay_seconds"): float,
    ("api", "port"): int,
    ("logging", "max_file_size_mb"): int,
    ("logging", "backup_count"): int,
}


@dataclass
class ExportConfig:
    """CSV export and download handle settings."""
    filename_prefix: str = "results"
    empty_query_placeholder: str = "empty"
    all_rows_label: str = "all"
    columns: List[str] = field(default_factory=lambda: list(DEFAULT_EXPORT_COLUMNS))
    download_dir: str = "downloads"
    release_delay_seconds: float = 1.0  # handle outlives the hand-off by this much


@dataclass
class APIConfig:
    """REST API listener configuration."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "INFO"
    format: str = "json"
    log_file: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5
    structured: bool = True


@dataclass
class SystemConfig:
    """Main system configuration combining all subsystem configs."""
    export: ExportConfig = field(default_factory=ExportConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create configuration from environment variables."""
        config = cls()

        # Export configuration from environment
        if os.getenv("EXPORT_PREFIX"):
            config.export.filename_prefix = os.getenv("EXPORT_PREFIX")
        if os.getenv("EXPORT_DIR"):
            config.export.download_dir = os.getenv("EXPORT_DIR")
        if os.getenv("EXPORT_RELEASE_DELAY"):
            config.export.release_delay_seconds = _parse_number(
                "EXPORT_RELEASE_DELAY", os.getenv("EXPORT_RELEASE_DELAY"), float
            )

        # API configuration from environment
        if os.getenv("API_HOST"):
            config.api.host = os.getenv("API_HOST")
        if os.getenv("API_PORT"):
            config.api.port = _parse_number("API_PORT", os.getenv("API_PORT"), int)

        # Logging configuration from environment
        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")

        config.validate()
        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}: {e}",
                context=create_error_context("load_config", config_path=config_path),
                original_exception=e
            ) from e

        config = cls()

        # Update configuration with file data
        for section_name in ("export", "api", "logging"):
            if section_name in config_data:
                section = getattr(config, section_name)
                for key, value in config_data[section_name].items():
                    if not hasattr(section, key):
                        continue
                    kind = _NUMERIC_FIELDS.get((section_name, key))
                    if kind is not None:
                        value = _parse_number(f"{section_name}.{key}", value, kind)
                    setattr(section, key, value)

        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the exporter and server cannot work with."""
        if self.export.release_delay_seconds < 0:
            raise ConfigurationError(
                "export.release_delay_seconds must not be negative",
                context=create_error_context(
                    "validate_config", release_delay_seconds=self.export.release_delay_seconds
                )
            )
        if not self.export.filename_prefix:
            raise ConfigurationError(
                "export.filename_prefix must not be empty",
                context=create_error_context("validate_config")
            )
        if not 0 < self.api.port < 65536:
            raise ConfigurationError(
                f"api.port out of range: {self.api.port}",
                context=create_error_context("validate_config", port=self.api.port)
            )

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        config_data = {
            "export": {
                "filename_prefix": self.export.filename_prefix,
                "empty_query_placeholder": self.export.empty_query_placeholder,
                "all_rows_label": self.export.all_rows_label,
                "columns": list(self.export.columns),
                "download_dir": self.export.download_dir,
                "release_delay_seconds": self.export.release_delay_seconds
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "max_file_size_mb": self.logging.max_file_size_mb,
                "backup_count": self.logging.backup_count
            }
        }

        with open(config_path, 'w') as f:
            json.dump(config_data, f, indent=2)


def _parse_number(name: str, raw, kind):
    if isinstance(raw, bool):
        raw = str(raw)
    try:
        return kind(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            context=create_error_context("load_config", variable=name),
            original_exception=e
        ) from e


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config

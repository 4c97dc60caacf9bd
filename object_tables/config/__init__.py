"""Configuration management."""

from .config import (
    Config,
    StoreConfig,
    ConnectorConfig,
    LoggingConfig,
    DEFAULT_MANIFEST_FILENAME,
    load_config,
)

__all__ = [
    "Config",
    "StoreConfig",
    "ConnectorConfig",
    "LoggingConfig",
    "DEFAULT_MANIFEST_FILENAME",
    "load_config",
]

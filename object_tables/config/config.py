"""Configuration management for the object table engine."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import yaml
from pathlib import Path


DEFAULT_MANIFEST_FILENAME = "object-tables.json"


@dataclass
class StoreConfig:
    """Configuration for the object store client."""

    type: str = "local"  # only "local" ships with the engine
    root: str = "."
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectorConfig:
    """Configuration for table materialization."""

    manifest_filename: str = DEFAULT_MANIFEST_FILENAME
    home_directory: Optional[str] = None  # substituted for "~~" in root paths
    max_bytes_per_line: int = 65536  # ranged read size for schema sampling
    table_cache_ttl_seconds: float = 60.0
    split_batch_size: int = 1000
    split_workers: int = 4
    fail_closed_file_partitions: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    structured: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""

    store: StoreConfig = field(default_factory=StoreConfig)
    schemas: Dict[str, str] = field(default_factory=dict)  # schema -> directory
    connector: ConnectorConfig = field(default_factory=ConnectorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Example YAML format:
        store:
          type: local
          root: /srv/objects

        schemas:
          logs: /user/stor/logs
          metrics: /user/stor/telegraf

        connector:
          manifest_filename: object-tables.json
          home_directory: /user
          max_bytes_per_line: 65536
          table_cache_ttl_seconds: 60
          split_batch_size: 1000
          split_workers: 4

        logging:
          level: DEBUG
          structured: true
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Parse store config
    store_data = dict(data.get("store", {}))
    store_type = store_data.pop("type", "local")
    if store_type != "local":
        raise ValueError(f"Unsupported object store type: {store_type}")
    store_root = store_data.pop("root", ".")
    store = StoreConfig(type=store_type, root=str(store_root), options=store_data)

    # Parse schema mapping
    schemas = {}
    for name, directory in (data.get("schemas") or {}).items():
        schemas[str(name)] = str(directory)

    # Parse connector config
    connector_data = data.get("connector", {})
    connector = ConnectorConfig(**connector_data)

    # Parse logging config
    logging_data = data.get("logging", {})
    logging_config = LoggingConfig(**logging_data)

    return Config(
        store=store, schemas=schemas, connector=connector, logging=logging_config
    )

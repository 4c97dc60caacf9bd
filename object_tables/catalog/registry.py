"""Registry of logical tables, loaded per schema from manifests."""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional

from ..config.config import ConnectorConfig
from ..exceptions import SchemaNotFoundError, TableNotFoundError
from ..storage.base import ObjectStoreClient, join_path
from .manifest import read_manifest
from .tables import LogicalTable

logger = logging.getLogger(__name__)


class SchemaTableName(NamedTuple):
    """Fully qualified table name."""

    schema_name: str
    table_name: str

    def __str__(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


@dataclass(frozen=True)
class _CachedSchema:
    tables: Mapping[str, LogicalTable]
    expires_at: float


class TableRegistry:
    """Resolves logical tables from the manifest in each schema directory.

    Tables are cached per schema for a fixed TTL. Concurrent cache misses for
    the same schema share a single manifest load: the first caller loads, the
    rest block on its outcome and receive the same tables or the same error.
    A reload replaces the whole mapping for the schema at once.
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        schemas: Dict[str, str],
        config: Optional[ConnectorConfig] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ):
        """Initialize registry.

        Args:
            store: Object store holding the manifests
            schemas: Mapping of schema name to schema directory
            config: Connector settings (manifest filename, TTL, home directory)
            time_fn: Clock used for cache expiry
        """
        self.store = store
        self.schemas = dict(schemas)
        self.config = config or ConnectorConfig()
        self._time_fn = time_fn
        self._lock = threading.Lock()
        self._cache: Dict[str, _CachedSchema] = {}
        self._loading: Dict[str, Future] = {}

    def list_schemas(self) -> List[str]:
        return sorted(self.schemas)

    def manifest_path(self, schema_name: str) -> str:
        """Get the manifest path for a schema.

        Raises:
            SchemaNotFoundError: If no directory is configured for the schema
        """
        directory = self.schemas.get(schema_name)
        if directory is None:
            raise SchemaNotFoundError.with_no_directory_message(schema_name)
        return join_path(directory, self.config.manifest_filename)

    def tables_for_schema(self, schema_name: str) -> Mapping[str, LogicalTable]:
        """Get a read-only mapping of table name to table for a schema.

        Raises:
            SchemaNotFoundError: If the schema is unknown or its manifest is unreadable
        """
        now = self._time_fn()
        with self._lock:
            cached = self._cache.get(schema_name)
            if cached is not None and now < cached.expires_at:
                logger.debug(f"Table cache hit for schema {schema_name}")
                return cached.tables

            pending = self._loading.get(schema_name)
            owner = pending is None
            if owner:
                pending = Future()
                self._loading[schema_name] = pending

        if not owner:
            logger.debug(f"Waiting for in-flight manifest load of schema {schema_name}")
            return pending.result()

        logger.debug(f"Table cache miss for schema {schema_name}")
        try:
            tables = MappingProxyType(self._load(schema_name))
        except BaseException as e:
            with self._lock:
                del self._loading[schema_name]
            pending.set_exception(e)
            raise

        with self._lock:
            self._cache[schema_name] = _CachedSchema(
                tables=tables,
                expires_at=self._time_fn() + self.config.table_cache_ttl_seconds,
            )
            del self._loading[schema_name]
        pending.set_result(tables)
        return tables

    def get_table(self, schema_name: str, table_name: str) -> LogicalTable:
        """Get a table by name.

        Raises:
            SchemaNotFoundError: If the schema cannot be resolved
            TableNotFoundError: If the manifest does not declare the table
        """
        table = self.tables_for_schema(schema_name).get(table_name)
        if table is None:
            raise TableNotFoundError(schema_name, table_name)
        return table

    def list_tables(self, schema_name: str) -> List[SchemaTableName]:
        """List the tables of a schema sorted by table name."""
        return [
            SchemaTableName(schema_name, name)
            for name in sorted(self.tables_for_schema(schema_name))
        ]

    def invalidate(self, schema_name: Optional[str] = None) -> None:
        """Drop cached tables for one schema, or for all schemas."""
        with self._lock:
            if schema_name is None:
                self._cache.clear()
            else:
                self._cache.pop(schema_name, None)

    def _load(self, schema_name: str) -> Dict[str, LogicalTable]:
        path = self.manifest_path(schema_name)
        try:
            return read_manifest(
                self.store, path, home_directory=self.config.home_directory
            )
        except OSError as e:
            error = SchemaNotFoundError(
                schema_name,
                f"Unable to read table manifest for schema {schema_name}: {e}",
            )
            error.set_context("schema_name", schema_name)
            error.set_context("manifest_path", path)
            raise error from e

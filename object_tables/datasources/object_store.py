"""Object store data source implementation."""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Dict, Iterator, Optional, Sequence, Tuple
import logging

import duckdb
import pyarrow as pa
from sqlglot import exp

from ..catalog.registry import TableRegistry
from ..catalog.schema import Column
from ..columns.router import ColumnListerRouter
from ..config.config import Config, StoreConfig
from ..exceptions import IllegalArgumentError, ObjectTablesError
from ..handles import Split, TableHandle, TableLayoutHandle, check_handle
from ..partitions.constraints import constraints_from_where
from ..record.record_set import JsonRecordSet, RecordSetProvider, arrow_schema
from ..splits.manager import SplitManager
from ..splits.source import StreamingSplitSource
from ..storage.base import ObjectStoreClient
from ..storage.local import LocalObjectStore
from .base import DataSource

logger = logging.getLogger(__name__)

RESULT_BATCH_SIZE = 10000


def create_store(store_config: StoreConfig) -> ObjectStoreClient:
    """Build the object store client named by the configuration."""
    if store_config.type == "local":
        return LocalObjectStore(store_config.root, store_config.options)
    raise ValueError(f"Unsupported object store type: {store_config.type}")


class ObjectStoreDataSource(DataSource):
    """Exposes the directories of an object store as queryable tables.

    Metadata, splits and record sets come from the table registry, split
    manager and record set provider. SQL is answered by materializing the
    referenced tables into Arrow and running the statement in an in-memory
    DuckDB connection.
    """

    def __init__(
        self,
        name: str,
        config: Optional[Config] = None,
        store: Optional[ObjectStoreClient] = None,
    ):
        """Initialize object store data source.

        Args:
            name: Unique name for this data source
            config: Engine configuration
            store: Object store client; built from ``config.store`` if None
        """
        config = config or Config()
        super().__init__(name, config)
        self.store = store or create_store(config.store)
        self.connector_config = config.connector
        self.registry = TableRegistry(self.store, config.schemas, config.connector)
        self.column_lister = ColumnListerRouter(self.store, config.connector)
        self.split_manager = SplitManager(self.store, self.registry, config.connector)
        self.record_sets = RecordSetProvider(self.store, self.registry)

    def connect(self) -> None:
        """Open the in-memory DuckDB connection used for SQL."""
        logger.info(f"Opening object store data source {self.name} on {self.store}")
        self.connection = duckdb.connect(":memory:")
        self._connected = True

    def disconnect(self) -> None:
        """Close the DuckDB connection."""
        if self.connection:
            self.connection.close()
            logger.info(f"Closed object store data source {self.name}")
            self.connection = None
            self._connected = False

    def list_schemas(self) -> List[str]:
        return self.registry.list_schemas()

    def list_tables(self, schema: str) -> List[str]:
        return [name.table_name for name in self.registry.list_tables(schema)]

    def get_table_handle(self, schema: str, table: str) -> TableHandle:
        """Resolve a table name to a handle.

        Raises:
            SchemaNotFoundError: If the schema is not configured or has no manifest
            TableNotFoundError: If the manifest does not declare the table
        """
        self.registry.get_table(schema, table)
        return TableHandle(schema_name=schema, table_name=table)

    def get_column_handles(self, table_handle: TableHandle) -> List[Column]:
        handle = check_handle(table_handle, TableHandle)
        table = self.registry.get_table(handle.schema_name, handle.table_name)
        return self.column_lister.list_columns(handle.schema_name, table)

    def get_table_layout(
        self, table_handle: TableHandle, constraints: Optional[Dict[str, str]] = None
    ) -> TableLayoutHandle:
        handle = check_handle(table_handle, TableHandle)
        return TableLayoutHandle.create(handle, constraints)

    def get_splits(self, layout: TableLayoutHandle) -> StreamingSplitSource:
        return self.split_manager.get_splits(layout)

    def get_record_set(self, split: Split, columns: Sequence[Column]) -> JsonRecordSet:
        split = check_handle(split, Split)
        return self.record_sets.get_record_set(split, columns)

    def list_all_splits(self, layout: TableLayoutHandle) -> List[Split]:
        """Drain the split source of a layout."""
        splits: List[Split] = []
        with self.get_splits(layout) as source:
            while not source.is_finished():
                batch = source.get_next_batch(self.connector_config.split_batch_size)
                splits.extend(batch.result())
        return splits

    def scan_table(
        self,
        table_handle: TableHandle,
        constraints: Optional[Dict[str, str]] = None,
        columns: Optional[Sequence[Column]] = None,
    ) -> pa.Table:
        """Read every qualifying split of a table into one Arrow table.

        Args:
            table_handle: Table to read
            constraints: Equality constraints on partition columns
            columns: Columns to read; all of the table's columns if None

        Returns:
            Arrow table with one column per requested column
        """
        if columns is None:
            columns = self.get_column_handles(table_handle)
        columns = list(columns)
        splits = self.list_all_splits(self.get_table_layout(table_handle, constraints))
        logger.debug(f"Scanning {len(splits)} splits of {table_handle}")

        if not splits:
            return arrow_schema(columns).empty_table()

        def read(split: Split) -> pa.Table:
            try:
                return self.get_record_set(split, columns).read_all()
            except ObjectTablesError as e:
                e.add_context("table", str(table_handle))
                e.add_context("object_path", split.object_path)
                raise

        workers = max(1, min(self.connector_config.split_workers, len(splits)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scan") as pool:
            tables = list(pool.map(read, splits))
        return pa.concat_tables(tables)

    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        """Execute query and yield Arrow record batches."""
        logger.debug(f"Executing query on {self.name}: {query[:100]}...")
        self.ensure_connected()
        tree = self.parse_query(query)
        references = self._table_references(tree)
        single = len(references) == 1

        registered = []
        try:
            for index, (node, handle) in enumerate(references):
                constraints = None
                if single:
                    constraints = self._pushed_constraints(tree, node, handle)
                data = self.scan_table(handle, constraints)
                name = self._register(node, handle, index, data)
                registered.append(name)
            result = self.connection.execute(tree.sql(dialect=self.dialect))
            arrow_table = result.fetch_arrow_table()
        finally:
            for name in registered:
                self.connection.unregister(name)

        for batch in arrow_table.to_batches(max_chunksize=RESULT_BATCH_SIZE):
            yield batch

    def get_query_schema(self, query: str) -> pa.Schema:
        """Get query schema without reading any data object."""
        self.ensure_connected()
        tree = self.parse_query(query)
        registered = []
        try:
            for index, (node, handle) in enumerate(self._table_references(tree)):
                columns = self.get_column_handles(handle)
                name = self._register(node, handle, index, arrow_schema(columns).empty_table())
                registered.append(name)
            sql = f"SELECT * FROM ({tree.sql(dialect=self.dialect)}) AS q LIMIT 0"
            return self.connection.execute(sql).fetch_arrow_table().schema
        finally:
            for name in registered:
                self.connection.unregister(name)

    def _table_references(self, tree: exp.Expression) -> List[Tuple[exp.Table, TableHandle]]:
        """Find the object tables a statement reads, resolving unqualified names.

        Raises:
            IllegalArgumentError: If a table name has no schema and more than
                one schema is configured
        """
        cte_names = {cte.alias_or_name for cte in tree.find_all(exp.CTE)}
        references = []
        for node in tree.find_all(exp.Table):
            schema = node.db
            if not schema:
                if node.name in cte_names:
                    continue
                schemas = self.list_schemas()
                if len(schemas) != 1:
                    raise IllegalArgumentError(
                        "Table reference must be qualified with a schema name",
                        table_name=node.name,
                    )
                schema = schemas[0]
            references.append((node, self.get_table_handle(schema, node.name)))
        if not references:
            raise IllegalArgumentError("Query does not reference any table", query=tree.sql())
        return references

    def _pushed_constraints(
        self, tree: exp.Expression, node: exp.Table, handle: TableHandle
    ) -> Dict[str, str]:
        """Partition constraints implied by the top-level WHERE clause.

        Constraints apply only when the table is the whole FROM clause of the
        outer SELECT. Anywhere else the outer column names may refer to
        something other than the table's columns.
        """
        if not isinstance(tree, exp.Select) or tree.args.get("joins"):
            return {}
        if not isinstance(node.parent, exp.From) or node.parent.parent is not tree:
            return {}
        table = self.registry.get_table(handle.schema_name, handle.table_name)
        names = [column.name for column in table.partition_columns()]
        if not names:
            return {}
        qualifiers = {node.name, node.alias_or_name}
        return constraints_from_where(
            tree.args.get("where"), names, dialect=self.dialect, qualifiers=qualifiers
        )

    def _register(
        self, node: exp.Table, handle: TableHandle, index: int, data: pa.Table
    ) -> str:
        """Register ``data`` with DuckDB and point the table reference at it."""
        name = f"{handle.schema_name}__{handle.table_name}__{index}"
        self.connection.register(name, data)
        if not node.alias:
            node.set("alias", exp.TableAlias(this=exp.to_identifier(handle.table_name)))
        node.set("catalog", None)
        node.set("db", None)
        node.set("this", exp.to_identifier(name, quoted=True))
        return name


"""Base data source interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Iterator, Optional, Sequence

import pyarrow as pa
import sqlglot

from ..catalog.schema import Column
from ..handles import Split, TableHandle, TableLayoutHandle
from ..record.record_set import JsonRecordSet
from ..splits.source import StreamingSplitSource


@dataclass
class ColumnMetadata:
    """Metadata about a column."""

    name: str
    data_type: str
    nullable: bool = True
    hidden: bool = False
    comment: Optional[str] = None


@dataclass
class TableMetadata:
    """Metadata about a table."""

    schema_name: str
    table_name: str
    columns: List[ColumnMetadata]


class DataSource(ABC):
    """Abstract base class for data sources.

    A data source is the surface a host query engine drives: metadata
    lookups, handle resolution, split enumeration and per-split record sets.
    """

    dialect = "duckdb"

    def __init__(self, name: str, config: Any):
        """Initialize data source.

        Args:
            name: Unique name for this data source
            config: Configuration object
        """
        self.name = name
        self.config = config
        self.connection = None
        self._connected = False

    @abstractmethod
    def connect(self) -> None:
        """Acquire the resources the data source needs."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Release the data source's resources."""
        pass

    @abstractmethod
    def list_schemas(self) -> List[str]:
        """List all available schemas."""
        pass

    @abstractmethod
    def list_tables(self, schema: str) -> List[str]:
        """List all tables in a schema.

        Args:
            schema: Schema name

        Returns:
            List of table names
        """
        pass

    @abstractmethod
    def get_table_handle(self, schema: str, table: str) -> TableHandle:
        """Resolve a table name to a handle."""
        pass

    @abstractmethod
    def get_column_handles(self, table_handle: TableHandle) -> List[Column]:
        """List the columns of a table, hidden partition columns included."""
        pass

    @abstractmethod
    def get_table_layout(
        self, table_handle: TableHandle, constraints: Optional[Dict[str, str]] = None
    ) -> TableLayoutHandle:
        """Attach pushed-down equality constraints to a table."""
        pass

    @abstractmethod
    def get_splits(self, layout: TableLayoutHandle) -> StreamingSplitSource:
        """Enumerate the splits of a table layout."""
        pass

    @abstractmethod
    def get_record_set(self, split: Split, columns: Sequence[Column]) -> JsonRecordSet:
        """Open the records of one split."""
        pass

    @abstractmethod
    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        """Execute a SQL query and return results as Arrow record batches.

        Args:
            query: SQL query string

        Returns:
            Iterator of Arrow record batches
        """
        pass

    @abstractmethod
    def get_query_schema(self, query: str) -> pa.Schema:
        """Get the schema of a query without executing it.

        Args:
            query: SQL query string

        Returns:
            Arrow schema
        """
        pass

    def get_table_metadata(self, schema: str, table: str) -> TableMetadata:
        """Get metadata for a table.

        Args:
            schema: Schema name
            table: Table name

        Returns:
            Table metadata including columns and types
        """
        handle = self.get_table_handle(schema, table)
        columns = []
        for column in self.get_column_handles(handle):
            columns.append(
                ColumnMetadata(
                    name=column.name,
                    data_type=column.type.value,
                    hidden=column.hidden,
                    comment=column.comment,
                )
            )
        return TableMetadata(schema_name=schema, table_name=table, columns=columns)

    def parse_query(self, query: str):
        """Parse query text into a sqlglot AST."""
        return sqlglot.parse_one(query, dialect=self.dialect)

    def is_connected(self) -> bool:
        """Check if data source is connected.

        Returns:
            True if connected, False otherwise
        """
        return self._connected

    def ensure_connected(self) -> None:
        """Ensure data source is connected."""
        if not self.is_connected():
            self.connect()
            self._connected = True

    def __enter__(self):
        """Context manager entry."""
        self.ensure_connected()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
        self._connected = False
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"

"""Schema discovery by sampling the first record of a table's smallest object."""

import io
import logging
from abc import abstractmethod
from typing import List, Optional

from ..catalog.schema import Column
from ..catalog.tables import LogicalTable
from ..config.config import ConnectorConfig
from ..exceptions import FileFormatError, TableNotFoundError
from ..record.compression import CompressionType
from ..record.counting import CountingObjectStream
from ..splits.filters import TableObjectFilter
from ..splits.traversal import find
from ..storage.base import ObjectStoreClient, StoredObject
from .base import ColumnLister

logger = logging.getLogger(__name__)


def read_first_line(stream: CountingObjectStream) -> str:
    """Read the first non-blank line of a stream.

    Raises:
        FileFormatError: If the stream holds only blank lines or nothing
    """
    text = io.TextIOWrapper(stream, encoding="utf-8", errors="replace", newline="")
    lines_read = 0
    try:
        for line in text:
            lines_read += 1
            if line.strip():
                return line
    finally:
        if not stream.closed:
            text.detach()

    raise FileFormatError(
        "Data file contains only blank lines",
        object_path=stream.path,
        lines_read=lines_read,
    )


class PeekingColumnLister(ColumnLister):
    """Base for listers that derive columns from a sample record."""

    def __init__(self, store: ObjectStoreClient, config: Optional[ConnectorConfig] = None):
        self.store = store
        self.config = config or ConnectorConfig()

    def list_columns(self, schema_name: str, table: LogicalTable) -> List[Column]:
        sample = self.first_object_for_table(schema_name, table)
        logger.debug(
            f"Inferring columns of {schema_name}.{table.name} from {sample.path} "
            f"({sample.content_length} bytes)"
        )
        return self.columns_from_line(sample.path, self.read_first_line(sample))

    def first_object_for_table(self, schema_name: str, table: LogicalTable) -> StoredObject:
        """Find the smallest data object of a table.

        Raises:
            TableNotFoundError: If the table has no data objects
        """
        member = TableObjectFilter(table, self.config.manifest_filename)
        smallest: Optional[StoredObject] = None
        objects = find(self.store, table.root_path)
        try:
            for obj in objects:
                if not member(obj):
                    continue
                if smallest is None or _size(obj) < _size(smallest):
                    smallest = obj
        finally:
            objects.close()

        if smallest is None:
            error = TableNotFoundError(
                schema_name, table.name, "No objects found for table"
            )
            error.set_context("root_path", table.root_path)
            raise error
        return smallest

    def read_first_line(self, obj: StoredObject) -> str:
        """Read the first non-blank line of an object.

        Only the leading ``max_bytes_per_line`` bytes are fetched, unless the
        object is compressed and must be read from the start.
        """
        byte_range = None
        if CompressionType.value_for_path(obj.path) is None:
            byte_range = (0, self.config.max_bytes_per_line - 1)
        with CountingObjectStream(obj.path, self.store.get(obj.path, byte_range)) as stream:
            return read_first_line(stream)

    @abstractmethod
    def columns_from_line(self, object_path: str, line: str) -> List[Column]:
        """Map one sample record to columns."""
        pass


def _size(obj: StoredObject) -> float:
    if obj.content_length is None:
        return float("inf")
    return obj.content_length

"""Record sets: per-split cursors and Arrow materialization."""

import logging
from decimal import Context, Decimal, InvalidOperation
from typing import Any, Iterator, List, Optional, Sequence

import pyarrow as pa

from ..catalog.registry import TableRegistry
from ..catalog.schema import Column
from ..catalog.tables import DataFileType, PartitionDefinition
from ..exceptions import FileFormatError
from ..handles import Split
from ..storage.base import ObjectStoreClient
from ..types import DECIMAL_PRECISION, DECIMAL_SCALE, ColumnType
from ..utils.logging import get_contextual_logger
from .cursor import JsonRecordCursor
from .decoder import DEFAULT_MAX_RECORD_BYTES

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000

_DECIMAL_CONTEXT = Context(prec=DECIMAL_PRECISION)
_DECIMAL_QUANTUM = Decimal(1).scaleb(-DECIMAL_SCALE)


def arrow_schema(columns: Sequence[Column]) -> pa.Schema:
    """Build the Arrow schema for a column list."""
    return pa.schema([pa.field(column.name, column.type.arrow_type()) for column in columns])


class JsonRecordSet:
    """The rows of one data object, read through a ``JsonRecordCursor``."""

    def __init__(
        self,
        store: ObjectStoreClient,
        object_path: str,
        data_file_type: DataFileType,
        columns: Sequence[Column],
        partition_definition: Optional[PartitionDefinition] = None,
        total_bytes: Optional[int] = None,
        max_record_chars: int = DEFAULT_MAX_RECORD_BYTES,
    ):
        if data_file_type == DataFileType.CSV:
            raise FileFormatError(
                "CSV data files are not supported", object_path=object_path
            )
        self.store = store
        self.object_path = object_path
        self.data_file_type = data_file_type
        self.columns: List[Column] = list(columns)
        self.partition_definition = partition_definition
        self.total_bytes = total_bytes
        self.max_record_chars = max_record_chars

    @property
    def column_types(self) -> List[ColumnType]:
        return [column.type for column in self.columns]

    @property
    def schema(self) -> pa.Schema:
        return arrow_schema(self.columns)

    def cursor(self) -> JsonRecordCursor:
        return JsonRecordCursor(
            self.store,
            self.object_path,
            self.columns,
            partition_definition=self.partition_definition,
            total_bytes=self.total_bytes,
            max_record_chars=self.max_record_chars,
        )

    def iter_batches(self, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[pa.RecordBatch]:
        """Read the object into Arrow record batches of at most ``batch_size`` rows.

        An object with no records yields nothing.
        """
        schema = self.schema
        log = get_contextual_logger(__name__, {"object_path": self.object_path})
        with self.cursor() as cursor:
            rows: List[List[Any]] = [[] for _ in self.columns]
            count = 0
            while cursor.advance():
                for field, values in enumerate(rows):
                    values.append(cursor.get_value(field))
                count += 1
                if count >= batch_size:
                    yield self._to_batch(schema, rows, cursor)
                    rows = [[] for _ in self.columns]
                    count = 0
            if count:
                yield self._to_batch(schema, rows, cursor)
            log.bind(
                bytes=cursor.completed_bytes,
                read_ms=round(cursor.read_time_nanos / 1e6, 1),
            ).debug("Finished reading object")

    def read_all(self) -> pa.Table:
        """Read the whole object into an Arrow table."""
        return pa.Table.from_batches(list(self.iter_batches()), schema=self.schema)

    def _to_batch(
        self, schema: pa.Schema, rows: List[List[Any]], cursor: JsonRecordCursor
    ) -> pa.RecordBatch:
        arrays = []
        for column, values in zip(self.columns, rows):
            if column.type == ColumnType.DECIMAL:
                values = [self._quantize(column, value, cursor) for value in values]
            elif column.type.is_map():
                values = [None if value is None else list(value.items()) for value in values]
            arrays.append(pa.array(values, type=column.type.arrow_type()))
        return pa.RecordBatch.from_arrays(arrays, schema=schema)

    def _quantize(
        self, column: Column, value: Optional[Decimal], cursor: JsonRecordCursor
    ) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            return value.quantize(_DECIMAL_QUANTUM, context=_DECIMAL_CONTEXT)
        except InvalidOperation as e:
            raise FileFormatError(
                f"Decimal value does not fit decimal({DECIMAL_PRECISION},{DECIMAL_SCALE})",
                column=column.name,
                input=str(value),
                object_path=self.object_path,
                line=cursor.line_number,
            ) from e


class RecordSetProvider:
    """Creates the record set for a split."""

    def __init__(
        self,
        store: ObjectStoreClient,
        registry: TableRegistry,
        max_record_chars: int = DEFAULT_MAX_RECORD_BYTES,
    ):
        self.store = store
        self.registry = registry
        self.max_record_chars = max_record_chars

    def get_record_set(self, split: Split, columns: Sequence[Column]) -> JsonRecordSet:
        """Build the record set reading ``columns`` from the split's object.

        Raises:
            TableNotFoundError: If the split's table is no longer declared
            FileFormatError: If the split's data file type cannot be read
        """
        table = self.registry.get_table(split.schema_name, split.table_name)
        logger.debug(f"Record set for {split.object_path} with {len(columns)} columns")
        return JsonRecordSet(
            self.store,
            split.object_path,
            split.data_file_type,
            columns,
            partition_definition=table.partition_definition,
            total_bytes=split.content_length,
            max_record_chars=self.max_record_chars,
        )

"""Record cursor over one JSON data object."""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..catalog.schema import Column, PartitionColumn
from ..catalog.tables import PartitionDefinition
from ..exceptions import FileFormatError, IllegalArgumentError, ObjectTablesRuntimeError
from ..storage.base import ObjectStoreClient
from ..types import ColumnType
from . import coercion
from .coercion import CoercionError
from .counting import CountingObjectStream
from .decoder import DEFAULT_MAX_RECORD_BYTES, read_records

logger = logging.getLogger(__name__)


class CursorState(Enum):
    UNSTARTED = "unstarted"
    POSITIONED = "positioned"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class JsonRecordCursor:
    """Forward-only cursor over the records of a JSON data object.

    The object is opened on the first ``advance()`` and read as a stream;
    records are decoded one at a time. Field accessors take the position of
    a column in the cursor's column list and are only valid while the cursor
    is positioned on a record. A cursor is used by one thread at a time.

    Example:
        with JsonRecordCursor(store, "/logs/a.json", columns) as cursor:
            while cursor.advance():
                print(cursor.get_string(0))
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        object_path: str,
        columns: Sequence[Column],
        partition_definition: Optional[PartitionDefinition] = None,
        total_bytes: Optional[int] = None,
        max_record_chars: int = DEFAULT_MAX_RECORD_BYTES,
    ):
        """Initialize cursor.

        Args:
            store: Object store to read from
            object_path: Path of the data object
            columns: Columns to expose, in field order
            partition_definition: Source of partition column values
            total_bytes: Object size if known
            max_record_chars: Upper bound on the text of a single record
        """
        self.store = store
        self.object_path = object_path
        self.columns: List[Column] = list(columns)
        self.max_record_chars = max_record_chars
        self._total_bytes = total_bytes
        self._state = CursorState.UNSTARTED
        self._stream: Optional[CountingObjectStream] = None
        self._records: Optional[Iterator[Tuple[int, Dict[str, Any]]]] = None
        self._record: Dict[str, Any] = {}
        self._line_number = 0
        self._rows = 0
        self._read_start_ns: Optional[int] = None
        self._partition_values: Dict[str, Optional[str]] = {}
        if partition_definition is not None and any(
            isinstance(column, PartitionColumn) for column in self.columns
        ):
            self._partition_values = partition_definition.partition_values(object_path)

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def line_number(self) -> int:
        """Line on which the current record starts."""
        return self._line_number

    @property
    def total_bytes(self) -> int:
        """Object size, or the decompressed bytes read once exhausted, or -1."""
        if self._total_bytes is None:
            return -1
        return self._total_bytes

    @property
    def completed_bytes(self) -> int:
        if self._stream is None:
            return 0
        return self._stream.bytes_read

    @property
    def read_time_nanos(self) -> int:
        if self._read_start_ns is None:
            return 0
        return time.monotonic_ns() - self._read_start_ns

    def get_type(self, field: int) -> ColumnType:
        return self._column(field).type

    def advance(self) -> bool:
        """Move to the next record.

        Returns:
            True if positioned on a record, False once the object is exhausted

        Raises:
            FileFormatError: If a record is malformed; the cursor is closed
        """
        if self._state in (CursorState.EXHAUSTED, CursorState.CLOSED):
            return False

        try:
            if self._state == CursorState.UNSTARTED:
                self._open()
            found = next(self._records, None)
        except BaseException:
            self.close()
            raise

        if found is None:
            self._state = CursorState.EXHAUSTED
            if self._total_bytes is None:
                self._total_bytes = self.completed_bytes
            logger.debug(f"Exhausted {self.object_path} after {self._rows} records")
            self._release()
            return False

        self._line_number, self._record = found
        self._rows += 1
        self._state = CursorState.POSITIONED
        return True

    def is_null(self, field: int) -> bool:
        return self._raw_value(field) is None

    def get_boolean(self, field: int) -> bool:
        return self._coerce(field, coercion.to_boolean)

    def get_long(self, field: int) -> int:
        """Get an integral value; timestamps as epoch millis, dates as epoch days."""
        column = self._column(field)
        if column.type == ColumnType.TIMESTAMP:
            return self._coerce(field, lambda v: coercion.to_epoch_millis(v, column.format))
        if column.type == ColumnType.DATE:
            return self._coerce(field, lambda v: coercion.to_epoch_days(v, column.format))
        return self._coerce(field, coercion.to_integer)

    def get_double(self, field: int) -> float:
        return self._coerce(field, coercion.to_double)

    def get_string(self, field: int) -> str:
        """Get a value as text; json columns render compact JSON."""
        column = self._column(field)
        if column.type == ColumnType.JSON:
            return self._coerce(field, coercion.to_json_text)
        return self._coerce(field, coercion.to_text)

    def get_object(self, field: int) -> Any:
        """Get a structured value: Decimal, bytes, or a dict for map columns."""
        column = self._column(field)
        converter = _OBJECT_CONVERTERS.get(column.type)
        if converter is None:
            raise IllegalArgumentError(
                "get_object not supported for type",
                column=column.name,
                field=field,
                type=column.type.value,
            )
        return self._coerce(field, converter)

    def get_value(self, field: int) -> Any:
        """Get the value in its natural Python form for the column type, or None."""
        if self.is_null(field):
            return None
        column_type = self._column(field).type
        if column_type == ColumnType.BOOLEAN:
            return self.get_boolean(field)
        if column_type in (ColumnType.INTEGER, ColumnType.BIGINT, ColumnType.TIMESTAMP):
            return self.get_long(field)
        if column_type == ColumnType.DATE:
            return coercion.epoch_days_to_date(self.get_long(field))
        if column_type == ColumnType.DOUBLE:
            return self.get_double(field)
        if column_type in (ColumnType.VARCHAR, ColumnType.JSON):
            return self.get_string(field)
        return self.get_object(field)

    def close(self) -> None:
        """Release the object stream. Safe to call more than once."""
        if self._state == CursorState.CLOSED:
            return
        self._state = CursorState.CLOSED
        self._release()

    def __enter__(self) -> "JsonRecordCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open(self) -> None:
        self._read_start_ns = time.monotonic_ns()
        logger.debug(f"Opening {self.object_path}")
        self._stream = CountingObjectStream(self.object_path, self.store.get(self.object_path))
        self._records = read_records(self._stream, self.object_path, self.max_record_chars)

    def _release(self) -> None:
        records, self._records = self._records, None
        stream = self._stream
        try:
            if records is not None:
                records.close()
        finally:
            if stream is not None and not stream.closed:
                stream.close()

    def _column(self, field: int) -> Column:
        if field < 0 or field >= len(self.columns):
            raise IllegalArgumentError(
                "Invalid field number specified",
                object_path=self.object_path,
                field_number=field,
                column_count=len(self.columns),
            )
        return self.columns[field]

    def _raw_value(self, field: int) -> Any:
        column = self._column(field)
        if self._state != CursorState.POSITIONED:
            raise ObjectTablesRuntimeError(
                "Cursor is not positioned on a record",
                object_path=self.object_path,
                state=self._state.value,
            )
        if isinstance(column, PartitionColumn):
            return self._partition_values.get(column.name)
        return self._record.get(column.name)

    def _coerce(self, field: int, converter: Callable[[Any], Any]) -> Any:
        value = self._raw_value(field)
        column = self.columns[field]
        if value is None:
            raise ObjectTablesRuntimeError(
                "Value is null; check is_null() first",
                column=column.name,
                object_path=self.object_path,
                line=self._line_number,
            )
        try:
            return converter(value)
        except CoercionError as e:
            raise FileFormatError(
                f"Unable to read value as {column.type.value}",
                column=column.name,
                input=coercion.to_text(value),
                format=column.format,
                line=self._line_number,
                object_path=self.object_path,
                reason=str(e),
            ) from e


_OBJECT_CONVERTERS: Dict[ColumnType, Callable[[Any], Any]] = {
    ColumnType.DECIMAL: coercion.to_decimal,
    ColumnType.VARBINARY: coercion.to_binary,
    ColumnType.MAP_STRING_STRING: coercion.to_string_map,
    ColumnType.MAP_STRING_DOUBLE: coercion.to_double_map,
    ColumnType.JSON: lambda value: value,
}

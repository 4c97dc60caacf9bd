"""Column type lattice and type-name parsing."""

from enum import Enum
from typing import Optional, Tuple

import pyarrow as pa

from .exceptions import IllegalArgumentError


class ColumnType(Enum):
    """Semantic column types a schema-on-read table can expose."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    BIGINT = "bigint"
    DOUBLE = "double"
    DECIMAL = "decimal"
    VARCHAR = "varchar"
    VARBINARY = "varbinary"
    DATE = "date"
    TIMESTAMP = "timestamp"
    MAP_STRING_STRING = "map(varchar,varchar)"
    MAP_STRING_DOUBLE = "map(varchar,double)"
    JSON = "json"

    def is_map(self) -> bool:
        return self in (ColumnType.MAP_STRING_STRING, ColumnType.MAP_STRING_DOUBLE)

    def arrow_type(self) -> pa.DataType:
        """Get the Arrow type used when materializing this column."""
        return _ARROW_TYPES[self]


DECIMAL_PRECISION = 38
DECIMAL_SCALE = 12

_ARROW_TYPES = {
    ColumnType.BOOLEAN: pa.bool_(),
    ColumnType.INTEGER: pa.int32(),
    ColumnType.BIGINT: pa.int64(),
    ColumnType.DOUBLE: pa.float64(),
    ColumnType.DECIMAL: pa.decimal128(DECIMAL_PRECISION, DECIMAL_SCALE),
    ColumnType.VARCHAR: pa.string(),
    ColumnType.VARBINARY: pa.binary(),
    ColumnType.DATE: pa.date32(),
    ColumnType.TIMESTAMP: pa.timestamp("ms"),
    ColumnType.MAP_STRING_STRING: pa.map_(pa.string(), pa.string()),
    ColumnType.MAP_STRING_DOUBLE: pa.map_(pa.string(), pa.float64()),
    ColumnType.JSON: pa.string(),
}


class TemporalFormat:
    """Well-known format annotations for date and timestamp columns.

    Any other non-blank annotation is treated as a ``strptime`` pattern.
    """

    EPOCH_MILLISECONDS = "epoch-milliseconds"
    EPOCH_SECONDS = "epoch-seconds"
    EPOCH_DAYS = "epoch-days"
    ISO_8601 = "iso-8601"

    KEYWORDS = (EPOCH_MILLISECONDS, EPOCH_SECONDS, EPOCH_DAYS, ISO_8601)


# Type names accepted in manifests that are not plain lattice values.
# Each maps to (type, implied format annotation).
_TYPE_ALIASES = {
    "bool": (ColumnType.BOOLEAN, None),
    "int": (ColumnType.INTEGER, None),
    "string": (ColumnType.VARCHAR, None),
    "timestamp-epoch-milliseconds": (ColumnType.TIMESTAMP, TemporalFormat.EPOCH_MILLISECONDS),
    "timestamp-epoch-seconds": (ColumnType.TIMESTAMP, TemporalFormat.EPOCH_SECONDS),
    "timestamp epoch seconds": (ColumnType.TIMESTAMP, TemporalFormat.EPOCH_SECONDS),
    "string[string,string]": (ColumnType.MAP_STRING_STRING, None),
    "string[string,double]": (ColumnType.MAP_STRING_DOUBLE, None),
}


def parse_type(type_name: str) -> Tuple[ColumnType, Optional[str]]:
    """Parse a manifest type name.

    Args:
        type_name: Type name as written in a manifest

    Returns:
        Tuple of (column type, implied format annotation or None)

    Raises:
        IllegalArgumentError: If the name is blank or not recognized
    """
    if not isinstance(type_name, str) or not type_name.strip():
        raise IllegalArgumentError(
            "Type name must not be blank", type_name_as_string=type_name
        )

    normalized = "".join(type_name.lower().split())
    for column_type in ColumnType:
        if column_type.value == normalized:
            return column_type, None

    alias = _TYPE_ALIASES.get(type_name.strip().lower()) or _TYPE_ALIASES.get(normalized)
    if alias is not None:
        return alias

    raise IllegalArgumentError(
        "Invalid string specified as column type", type_name_as_string=type_name
    )

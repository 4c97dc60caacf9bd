"""Column inference for newline-delimited JSON objects."""

import logging
import re
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from ..catalog.schema import Column
from ..exceptions import ObjectTablesRuntimeError, UncheckedIOError
from ..record.decoder import parse_single_value
from ..types import ColumnType
from .peeking import PeekingColumnLister

logger = logging.getLogger(__name__)

INT32_RANGE = (-(2 ** 31), 2 ** 31 - 1)
INT64_RANGE = (-(2 ** 63), 2 ** 63 - 1)

DATE_KEYWORDS = ("date", "timestamp")

# Checked in order against the lower-cased value; first match wins.
DATE_FORMAT_REGEXPS = (
    (re.compile(r"^\d{8}$"), "%Y%m%d"),
    (re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"), "%d-%m-%Y"),
    (re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{4}/\d{1,2}/\d{1,2}$"), "%Y/%m/%d"),
    (re.compile(r"^\d{1,2}\s[a-z]{3}\s\d{4}$"), "%d %b %Y"),
    (re.compile(r"^\d{1,2}\s[a-z]{4,}\s\d{4}$"), "%d %B %Y"),
)


def find_date_format(field_name: str, value: str) -> Optional[str]:
    """Guess a date pattern for a text value of a date-like field."""
    name = field_name.lower()
    if not any(keyword in name for keyword in DATE_KEYWORDS):
        return None
    text = value.lower()
    for regex, pattern in DATE_FORMAT_REGEXPS:
        if regex.match(text):
            return pattern
    return None


def numeric_type(value: Any) -> ColumnType:
    """Pick the narrowest column type that holds a decoded JSON number."""
    if isinstance(value, int):
        if INT32_RANGE[0] <= value <= INT32_RANGE[1]:
            return ColumnType.INTEGER
        if INT64_RANGE[0] <= value <= INT64_RANGE[1]:
            return ColumnType.BIGINT
        return ColumnType.DECIMAL
    if _fits_double(value):
        return ColumnType.DOUBLE
    return ColumnType.DECIMAL


def infer_column(name: str, value: Any) -> Column:
    """Map one field of a sample record to a column."""
    column_type, comment, column_format = _classify(name, value)
    return Column(name=name, type=column_type, comment=comment, format=column_format)


class JsonColumnLister(PeekingColumnLister):
    """Infers columns from the first record of a table's smallest object."""

    def columns_from_line(self, object_path: str, line: str) -> List[Column]:
        try:
            record = parse_single_value(line)
        except ValueError as e:
            raise UncheckedIOError(
                "Error parsing first line of new line JSON file",
                object_path=object_path,
                first_line=line.strip(),
            ) from e

        if not isinstance(record, dict):
            raise ObjectTablesRuntimeError(
                "JSON line should always be an object so that it can be "
                "converted to a columnar format",
                object_path=object_path,
                node_type=type(record).__name__,
            )

        return [infer_column(name, value) for name, value in record.items()]


def _classify(name: str, value: Any) -> Tuple[ColumnType, str, Optional[str]]:
    if isinstance(value, dict):
        return ColumnType.JSON, "jsonObject", None
    if isinstance(value, bool):
        return ColumnType.BOOLEAN, "boolean", None
    if isinstance(value, (int, Decimal, float)):
        return numeric_type(value), "number", None
    if isinstance(value, str):
        date_format = find_date_format(name, value)
        if date_format is not None:
            return ColumnType.DATE, "date", date_format
        return ColumnType.VARCHAR, "string", None
    if isinstance(value, list):
        return ColumnType.VARCHAR, "array", None
    return ColumnType.VARCHAR, "null", None


def _fits_double(value: Any) -> bool:
    if isinstance(value, float):
        return True
    try:
        return Decimal(repr(float(value))) == value
    except (OverflowError, ValueError):
        return False


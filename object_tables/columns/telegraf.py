"""Fixed columns of Telegraf JSON metric files."""

from typing import List

from ..catalog.schema import Column
from ..catalog.tables import LogicalTable
from ..types import ColumnType, TemporalFormat
from .base import ColumnLister

TELEGRAF_COLUMNS = (
    Column(
        name="timestamp",
        type=ColumnType.TIMESTAMP,
        comment="Timestamp without TZ",
        format=TemporalFormat.EPOCH_SECONDS,
    ),
    Column(name="tags", type=ColumnType.MAP_STRING_STRING, comment="Associative array of tags"),
    Column(name="name", type=ColumnType.VARCHAR, comment="Name of metric"),
    Column(
        name="fields",
        type=ColumnType.MAP_STRING_DOUBLE,
        comment="Associative array of metric fields",
    ),
)


class TelegrafColumnLister(ColumnLister):
    """Telegraf's JSON output always has the same four fields."""

    def list_columns(self, schema_name: str, table: LogicalTable) -> List[Column]:
        return list(TELEGRAF_COLUMNS)

"""Columns declared explicitly in the table manifest."""

from typing import List

from ..catalog.schema import Column
from ..catalog.tables import LogicalTable
from ..exceptions import IllegalArgumentError
from .base import ColumnLister


class PredefinedColumnLister(ColumnLister):
    """Returns the ``columnConfig`` of a table verbatim."""

    def list_columns(self, schema_name: str, table: LogicalTable) -> List[Column]:
        if table.columns is None:
            raise IllegalArgumentError(
                "Table has no predefined columns", schema_name=schema_name, table=table.name
            )
        return list(table.columns)

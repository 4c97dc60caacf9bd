"""Column lister interface."""

from abc import ABC, abstractmethod
from typing import List

from ..catalog.schema import Column
from ..catalog.tables import LogicalTable


class ColumnLister(ABC):
    """Determines the data columns of a logical table."""

    @abstractmethod
    def list_columns(self, schema_name: str, table: LogicalTable) -> List[Column]:
        """List the data columns of a table, in field order.

        Args:
            schema_name: Schema the table belongs to
            table: Table definition

        Returns:
            Columns in declaration order
        """
        pass

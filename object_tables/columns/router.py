"""Chooses how to list a table's columns."""

import logging
import threading
from collections import OrderedDict
from typing import List, Optional, Tuple

from ..catalog.schema import Column
from ..catalog.tables import DataFileType, LogicalTable
from ..config.config import ConnectorConfig
from ..exceptions import FileFormatError
from ..storage.base import ObjectStoreClient
from .base import ColumnLister
from .json_lister import JsonColumnLister
from .predefined import PredefinedColumnLister
from .telegraf import TelegrafColumnLister

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 2000


class ColumnListerRouter(ColumnLister):
    """Routes a table to the lister for its definition and file type.

    Manifest columns take precedence; otherwise the data file type decides.
    The table's partition columns are appended as hidden columns. Results are
    cached per table definition, so sampling happens once per definition.
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        config: Optional[ConnectorConfig] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        self.predefined = PredefinedColumnLister()
        self.json = JsonColumnLister(store, config)
        self.telegraf = TelegrafColumnLister()
        self.cache_size = cache_size
        self._cache: "OrderedDict[Tuple[str, LogicalTable], List[Column]]" = OrderedDict()
        self._lock = threading.Lock()

    def lister_for(self, table: LogicalTable) -> ColumnLister:
        """Pick the lister for a table.

        Raises:
            FileFormatError: If the table's data file type cannot be read
        """
        if table.columns is not None:
            return self.predefined
        if table.data_file_type == DataFileType.NDJSON:
            return self.json
        if table.data_file_type == DataFileType.TELEGRAF_NDJSON:
            return self.telegraf
        raise FileFormatError(
            f"{table.data_file_type.name} data files are not supported",
            table=table.name,
            data_file_type=table.data_file_type.name,
        )

    def list_columns(self, schema_name: str, table: LogicalTable) -> List[Column]:
        key = (schema_name, table)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return list(cached)

        columns = self.lister_for(table).list_columns(schema_name, table)
        names = {column.name for column in columns}
        for partition_column in table.partition_columns():
            if partition_column.name not in names:
                columns.append(partition_column)

        with self._lock:
            self._cache[key] = columns
            if len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        logger.debug(f"Listed {len(columns)} columns for {schema_name}.{table.name}")
        return list(columns)

"""Split generation with partition pruning."""

import logging
from concurrent.futures import Executor
from typing import Iterator, Mapping, Optional, Tuple

from ..catalog.registry import TableRegistry
from ..catalog.tables import LogicalTable
from ..config.config import ConnectorConfig
from ..handles import Split, TableLayoutHandle, check_handle
from ..partitions.predicate import ALWAYS_TRUE, PartitionPredicate, create_partition_predicate
from ..storage.base import ObjectStoreClient
from .filters import TableObjectFilter
from .source import StreamingSplitSource
from .traversal import find

logger = logging.getLogger(__name__)


def build_partition_predicates(
    table: LogicalTable,
    constraints: Optional[Mapping[str, str]],
    fail_closed_files: bool = False,
) -> Tuple[PartitionPredicate, PartitionPredicate]:
    """Build the (directory, file) predicates for a table and its constraints.

    Directory predicates are always fail open: the ancestors of every
    partition directory never match the directory regex.
    """
    definition = table.partition_definition
    if definition is None or not constraints:
        return ALWAYS_TRUE, ALWAYS_TRUE

    directory_predicate = create_partition_predicate(
        definition.directory_filter_regex,
        constraints,
        definition.directory_partitions_as_columns(),
    )
    file_predicate = create_partition_predicate(
        definition.filter_regex,
        constraints,
        definition.file_partitions_as_columns(),
        fail_closed=fail_closed_files,
    )
    return directory_predicate, file_predicate


class SplitManager:
    """Produces the splits of a table: one per qualifying data object."""

    def __init__(
        self,
        store: ObjectStoreClient,
        registry: TableRegistry,
        config: Optional[ConnectorConfig] = None,
        executor: Optional[Executor] = None,
    ):
        """Initialize split manager.

        Args:
            store: Object store to list
            registry: Source of table definitions
            config: Connector settings
            executor: Pool shared by split sources; each source gets its own if None
        """
        self.store = store
        self.registry = registry
        self.config = config or ConnectorConfig()
        self.executor = executor

    def get_splits(self, layout: TableLayoutHandle) -> StreamingSplitSource:
        """Start generating the splits of a table layout.

        Listing happens lazily as batches are requested from the returned source.

        Raises:
            UnexpectedHandleTypeError: If ``layout`` is not a TableLayoutHandle
            TableNotFoundError: If the table is not declared
            IllegalArgumentError: If a constraint is not a single varchar value
        """
        layout = check_handle(layout, TableLayoutHandle)
        handle = layout.table
        table = self.registry.get_table(handle.schema_name, handle.table_name)
        directory_predicate, file_predicate = build_partition_predicates(
            table, layout.constraint_map, self.config.fail_closed_file_partitions
        )
        logger.debug(
            f"Generating splits for {handle} under {table.root_path} "
            f"(directory predicate: {directory_predicate is not ALWAYS_TRUE}, "
            f"file predicate: {file_predicate is not ALWAYS_TRUE})"
        )
        splits = self._generate(
            handle.schema_name, table, directory_predicate, file_predicate
        )
        return StreamingSplitSource(splits, self.executor)

    def _generate(
        self,
        schema_name: str,
        table: LogicalTable,
        directory_predicate: PartitionPredicate,
        file_predicate: PartitionPredicate,
    ) -> Iterator[Split]:
        member = TableObjectFilter(table, self.config.manifest_filename)
        objects = find(self.store, table.root_path, directory_predicate)
        try:
            for obj in objects:
                if not member(obj) or not file_predicate(obj):
                    continue
                yield Split(
                    schema_name=schema_name,
                    table_name=table.name,
                    object_path=obj.path,
                    data_file_type=table.data_file_type,
                    content_length=obj.content_length,
                    directory_predicate=directory_predicate,
                    file_predicate=file_predicate,
                )
        finally:
            objects.close()

"""Split generation: pruned traversal, table object selection and batching."""

from .traversal import find
from .filters import TableObjectFilter
from .source import StreamingSplitSource
from .manager import SplitManager, build_partition_predicates

__all__ = [
    "find",
    "TableObjectFilter",
    "StreamingSplitSource",
    "SplitManager",
    "build_partition_predicates",
]

"""Logical table catalog: table model, manifests and the table registry."""

from .schema import Column, PartitionColumn
from .tables import DataFileType, PartitionDefinition, LogicalTable
from .manifest import parse_manifest, index_tables, read_manifest, serialize_manifest
from .registry import TableRegistry, SchemaTableName

__all__ = [
    "Column",
    "PartitionColumn",
    "DataFileType",
    "PartitionDefinition",
    "LogicalTable",
    "parse_manifest",
    "index_tables",
    "read_manifest",
    "serialize_manifest",
    "TableRegistry",
    "SchemaTableName",
]

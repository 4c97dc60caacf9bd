"""Data source connectors."""

from .base import DataSource, TableMetadata, ColumnMetadata
from .object_store import ObjectStoreDataSource, create_store

__all__ = [
    "DataSource",
    "TableMetadata",
    "ColumnMetadata",
    "ObjectStoreDataSource",
    "create_store",
]

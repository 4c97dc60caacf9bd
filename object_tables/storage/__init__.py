"""Object store clients."""

from .base import (
    ObjectStoreClient,
    StoredObject,
    SEPARATOR,
    format_path,
    join_path,
    file_extension,
    extract_media_type,
)
from .local import LocalObjectStore

__all__ = [
    "ObjectStoreClient",
    "StoredObject",
    "SEPARATOR",
    "format_path",
    "join_path",
    "file_extension",
    "extract_media_type",
    "LocalObjectStore",
]

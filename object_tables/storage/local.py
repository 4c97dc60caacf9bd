"""Local filesystem object store."""

import io
import logging
import mimetypes
import os
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Tuple

from ..exceptions import ObjectNotFoundError
from .base import ObjectStoreClient, StoredObject, SEPARATOR, format_path, join_path

logger = logging.getLogger(__name__)

# Types mimetypes doesn't know about
_EXTRA_CONTENT_TYPES = {
    ".ndjson": "application/x-ndjson",
    ".ldjson": "application/x-ndjson",
}


class LocalObjectStore(ObjectStoreClient):
    """Object store backed by a directory on the local filesystem.

    Store paths are absolute (``/user/stor/logs``) and resolved under the
    configured root directory.
    """

    def __init__(self, root: str, config: Optional[Dict] = None):
        """Initialize local object store.

        Args:
            root: Filesystem directory that stands in for the store root
            config: Extra options (unused, accepted for symmetry with other stores)
        """
        self.root = Path(root).resolve()
        self.config = config or {}

    def _resolve(self, path: str) -> Path:
        relative = format_path(path).lstrip(SEPARATOR)
        resolved = (self.root / relative).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise ObjectNotFoundError(path)
        return resolved

    def _describe(self, path: str, entry_path: Path) -> StoredObject:
        if entry_path.is_dir():
            return StoredObject(path=format_path(path), is_directory=True)
        content_type = _EXTRA_CONTENT_TYPES.get(entry_path.suffix.lower())
        if content_type is None:
            content_type, _ = mimetypes.guess_type(entry_path.name)
        return StoredObject(
            path=format_path(path),
            is_directory=False,
            content_length=entry_path.stat().st_size,
            content_type=content_type,
        )

    def list_directory(self, path: str) -> Iterator[StoredObject]:
        """Stream directory entries as they are read from disk."""
        directory = self._resolve(path)
        if not directory.is_dir():
            raise ObjectNotFoundError(path)
        logger.debug(f"Listing directory {path}")
        with os.scandir(directory) as entries:
            for entry in entries:
                yield self._describe(join_path(path, entry.name), Path(entry.path))

    def head(self, path: str) -> StoredObject:
        resolved = self._resolve(path)
        if not resolved.exists():
            raise ObjectNotFoundError(path)
        return self._describe(path, resolved)

    def get(self, path: str, byte_range: Optional[Tuple[int, int]] = None) -> BinaryIO:
        resolved = self._resolve(path)
        if not resolved.is_file():
            raise ObjectNotFoundError(path)

        if byte_range is None:
            return open(resolved, "rb")

        start, end = byte_range
        with open(resolved, "rb") as f:
            f.seek(start)
            data = f.read(end - start + 1)
        return io.BytesIO(data)

    def __repr__(self) -> str:
        return f"LocalObjectStore(root={self.root})"

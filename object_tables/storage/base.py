"""Base object store interface.

The engine only ever talks to storage through this narrow surface: a lazily
paginated directory listing, a metadata lookup, and full or ranged reads.
Retries and transient-fault handling belong to the implementation, never to
the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Tuple

from ..exceptions import ObjectNotFoundError

SEPARATOR = "/"


@dataclass(frozen=True)
class StoredObject:
    """Metadata about a single object or directory in the store."""

    path: str
    is_directory: bool
    content_length: Optional[int] = None
    content_type: Optional[str] = None

    @property
    def name(self) -> str:
        """Last path segment."""
        return self.path.rstrip(SEPARATOR).rsplit(SEPARATOR, 1)[-1]


class ObjectStoreClient(ABC):
    """Abstract base class for object store clients."""

    @abstractmethod
    def list_directory(self, path: str) -> Iterator[StoredObject]:
        """Stream the direct children of a directory.

        Implementations must be lazy: pages are fetched as the iterator is
        consumed, and closing the iterator stops further requests.

        Args:
            path: Directory path

        Returns:
            Iterator of child objects in listing order
        """
        pass

    @abstractmethod
    def head(self, path: str) -> StoredObject:
        """Get metadata for a single object.

        Raises:
            ObjectNotFoundError: If nothing exists at the path
        """
        pass

    @abstractmethod
    def get(self, path: str, byte_range: Optional[Tuple[int, int]] = None) -> BinaryIO:
        """Open an object for reading.

        Args:
            path: Object path
            byte_range: Optional inclusive (start, end) byte range

        Returns:
            Binary stream positioned at the start of the requested bytes

        Raises:
            ObjectNotFoundError: If nothing exists at the path
        """
        pass

    def exists(self, path: str) -> bool:
        """Check whether an object or directory exists."""
        try:
            self.head(path)
        except ObjectNotFoundError:
            return False
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def format_path(path: str) -> str:
    """Normalize a store path: single separators, leading separator, no trailing one."""
    parts = [part for part in path.split(SEPARATOR) if part]
    return SEPARATOR + SEPARATOR.join(parts)


def join_path(directory: str, name: str) -> str:
    """Join a directory path and a child name."""
    return format_path(directory + SEPARATOR + name)


def file_extension(path: str) -> str:
    """Get the extension of the last path segment without the dot, or ''."""
    name = path.rsplit(SEPARATOR, 1)[-1]
    dot = name.rfind(".")
    if dot == -1:
        return ""
    return name[dot + 1:]


def extract_media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters such as charset from a content type header value."""
    if content_type is None or not content_type.strip():
        return None
    return content_type.split(";", 1)[0].strip().lower()

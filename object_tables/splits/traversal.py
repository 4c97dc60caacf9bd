"""Lazy depth-first traversal of the object store."""

import logging
from typing import Callable, Iterator, Optional

from ..storage.base import ObjectStoreClient, StoredObject

logger = logging.getLogger(__name__)


def find(
    store: ObjectStoreClient,
    path: str,
    directory_filter: Optional[Callable[[StoredObject], bool]] = None,
) -> Iterator[StoredObject]:
    """Walk everything below ``path``, depth first, in listing order.

    A directory is listed only when the walk reaches it. Directories rejected
    by ``directory_filter`` are neither yielded nor listed. Closing the
    returned generator closes every open listing.

    Args:
        store: Object store to walk
        path: Directory to start from (not itself yielded)
        directory_filter: Predicate deciding whether to descend into a directory

    Yields:
        Files and accepted directories; a directory precedes its contents
    """
    for obj in store.list_directory(path):
        if not obj.is_directory:
            yield obj
            continue
        if directory_filter is not None and not directory_filter(obj):
            logger.debug(f"Pruned directory {obj.path}")
            continue
        yield obj
        yield from find(store, obj.path, directory_filter)

"""Reading and writing table manifests.

A manifest is a JSON array of table definitions stored in each schema
directory. Parsing is lenient (JSON5): comments, unquoted keys, single
quoted strings and trailing commas are all accepted.
"""

import logging
from typing import Dict, Iterable, List, Optional

import json5

from ..exceptions import IllegalArgumentError
from ..storage.base import ObjectStoreClient
from .tables import LogicalTable

logger = logging.getLogger(__name__)


def parse_manifest(text: str, home_directory: Optional[str] = None) -> List[LogicalTable]:
    """Parse manifest text into tables, keeping declaration order.

    Args:
        text: Manifest document
        home_directory: Substituted for a leading ``~~`` in root paths

    Returns:
        Tables in declaration order

    Raises:
        IllegalArgumentError: If the document or an entry is malformed
    """
    try:
        data = json5.loads(text)
    except ValueError as e:
        raise IllegalArgumentError(f"Unable to parse table manifest: {e}") from e

    if not isinstance(data, list):
        raise IllegalArgumentError(
            "Expected table manifest to be a JSON array", raw_value=type(data).__name__
        )

    return [LogicalTable.from_dict(entry, home_directory=home_directory) for entry in data]


def index_tables(tables: Iterable[LogicalTable]) -> Dict[str, LogicalTable]:
    """Map tables by name, rejecting duplicates.

    Raises:
        IllegalArgumentError: If two tables share a name
    """
    by_name: Dict[str, LogicalTable] = {}
    for table in tables:
        if table.name in by_name:
            raise IllegalArgumentError(
                "Multiple tables specified with the same name. Table names must be unique.",
                duplicate_table_name=table.name,
            )
        by_name[table.name] = table
    return by_name


def read_manifest(
    store: ObjectStoreClient, path: str, home_directory: Optional[str] = None
) -> Dict[str, LogicalTable]:
    """Read and parse the manifest at a store path.

    Store errors propagate unchanged so callers can decide how to report them.
    """
    logger.debug(f"Reading table manifest {path}")
    with store.get(path) as stream:
        text = stream.read().decode("utf-8")
    tables = index_tables(parse_manifest(text, home_directory=home_directory))
    logger.debug(f"Loaded {len(tables)} table definitions from {path}")
    return tables


def serialize_manifest(tables: Iterable[LogicalTable]) -> str:
    """Render tables as a strict JSON manifest, sorted by name."""
    data = [table.to_dict() for table in sorted(tables)]
    return json5.dumps(data, indent=2, quote_keys=True, trailing_commas=False)

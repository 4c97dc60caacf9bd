"""Selection of the objects that belong to a table."""

from ..catalog.tables import DataFileType, LogicalTable
from ..config.config import DEFAULT_MANIFEST_FILENAME
from ..storage.base import StoredObject


class TableObjectFilter:
    """Accepts the data objects of a table.

    Directories and the schema manifest are rejected. A file is accepted
    when its extension (ignoring a compression suffix) is a data file
    extension, when its media type is a data file media type, or when the
    table's file regex matches its path.
    """

    def __init__(self, table: LogicalTable, manifest_filename: str = DEFAULT_MANIFEST_FILENAME):
        self.table = table
        self.manifest_filename = manifest_filename
        definition = table.partition_definition
        self._file_pattern = definition.filter_pattern if definition is not None else None

    def __call__(self, obj: StoredObject) -> bool:
        if obj.is_directory or obj.name == self.manifest_filename:
            return False
        if DataFileType.value_by_path(obj.path) is not None:
            return True
        if DataFileType.value_by_media_type(obj.content_type) is not None:
            return True
        return self._file_pattern is not None and self._file_pattern.search(obj.path) is not None

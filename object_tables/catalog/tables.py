"""Logical table model: data file types, partition definitions and tables."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from ..exceptions import IllegalArgumentError
from ..storage.base import SEPARATOR, extract_media_type, format_path
from ..types import ColumnType
from .schema import Column, PartitionColumn

HOME_DIRECTORY_MARKER = "~~"


class DataFileType(Enum):
    """Supported data file formats, with their extensions and media types."""

    NDJSON = (
        ("ndjson", "json", "ldjson"),
        ("application/x-ndjson", "application/x-json-stream", "application/json"),
    )
    TELEGRAF_NDJSON = (
        ("telegraf.json", "telegraf.ndjson"),
        ("application/x-json-stream-telegraf",),
    )
    # Recognized so listings can classify files; not readable.
    CSV = (("csv",), ("text/csv", "application/csv"))

    def __init__(self, extensions: Tuple[str, ...], media_types: Tuple[str, ...]):
        self.extensions = extensions
        self.media_types = media_types

    @property
    def default_extension(self) -> str:
        return self.extensions[0]

    @property
    def default_media_type(self) -> str:
        return self.media_types[0]

    @classmethod
    def from_name(cls, name: str) -> "DataFileType":
        """Resolve a manifest ``dataFileType`` value such as ``NDJSON``."""
        try:
            return cls[name]
        except KeyError:
            raise IllegalArgumentError(
                f"Unsupported data file type specified [{name}]",
                field="dataFileType",
                raw_value=name,
            ) from None

    @classmethod
    def value_by_extension(cls, extension: str) -> Optional["DataFileType"]:
        extension = extension.lower()
        for file_type in cls:
            if extension in file_type.extensions:
                return file_type
        return None

    @classmethod
    def value_by_media_type(cls, media_type: Optional[str]) -> Optional["DataFileType"]:
        media_type = extract_media_type(media_type)
        if media_type is None:
            return None
        for file_type in cls:
            if media_type in file_type.media_types:
                return file_type
        return None

    @classmethod
    def value_by_path(cls, path: str) -> Optional["DataFileType"]:
        """Resolve a type from a file name, ignoring any compression suffix.

        Compound extensions win over simple ones, so ``cpu.telegraf.json``
        resolves to ``TELEGRAF_NDJSON`` rather than ``NDJSON``.
        """
        from ..record.compression import CompressionType

        name = path.rsplit(SEPARATOR, 1)[-1].lower()
        stem, _, last = name.rpartition(".")
        if stem and CompressionType.is_extension_supported(last):
            name = stem

        best: Optional[DataFileType] = None
        best_length = 0
        for file_type in cls:
            for extension in file_type.extensions:
                if name.endswith("." + extension) and len(extension) > best_length:
                    best = file_type
                    best_length = len(extension)
        return best


@dataclass(frozen=True)
class PartitionDefinition:
    """Regex based partitioning of a table's directories and files.

    Partition column ``i`` in either list is read from capture group
    ``i + 1`` of the matching regex. Group counts are not checked here; an
    index past the end of a regex fails when a path is first matched.
    """

    directory_filter_regex: Optional[str] = None
    filter_regex: Optional[str] = None
    directory_filter_partitions: Tuple[str, ...] = ()
    filter_partitions: Tuple[str, ...] = ()
    _directory_pattern: Optional[Pattern] = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )
    _filter_pattern: Optional[Pattern] = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self):
        object.__setattr__(
            self, "directory_filter_regex", _blank_to_none(self.directory_filter_regex)
        )
        object.__setattr__(self, "filter_regex", _blank_to_none(self.filter_regex))
        object.__setattr__(
            self,
            "directory_filter_partitions",
            _ordered_unique(self.directory_filter_partitions),
        )
        object.__setattr__(self, "filter_partitions", _ordered_unique(self.filter_partitions))
        object.__setattr__(
            self,
            "_directory_pattern",
            _compile(self.directory_filter_regex, "directoryFilterRegex"),
        )
        object.__setattr__(self, "_filter_pattern", _compile(self.filter_regex, "filterRegex"))

    @property
    def directory_pattern(self) -> Optional[Pattern]:
        return self._directory_pattern

    @property
    def filter_pattern(self) -> Optional[Pattern]:
        return self._filter_pattern

    def is_empty(self) -> bool:
        return (
            self.directory_filter_regex is None
            and self.filter_regex is None
            and not self.directory_filter_partitions
            and not self.filter_partitions
        )

    def file_partitions_as_columns(self) -> List[PartitionColumn]:
        """Partition columns read from object file paths."""
        return _partition_columns("file", self.filter_regex, self.filter_partitions)

    def directory_partitions_as_columns(self) -> List[PartitionColumn]:
        """Partition columns read from directory paths."""
        return _partition_columns(
            "directory", self.directory_filter_regex, self.directory_filter_partitions
        )

    def partition_values(self, path: str) -> Dict[str, Optional[str]]:
        """Extract partition column values from an object path.

        The directory regex is tried against the object path, then against
        its parent directory. Columns whose regex does not match are None.

        Raises:
            IllegalArgumentError: If a column index has no capture group
        """
        values: Dict[str, Optional[str]] = {}
        parent = path.rsplit(SEPARATOR, 1)[0] + SEPARATOR
        levels = (
            (self._directory_pattern, self.directory_partitions_as_columns(), (path, parent)),
            (self._filter_pattern, self.file_partitions_as_columns(), (path,)),
        )
        for pattern, columns, candidates in levels:
            if not columns:
                continue
            match = None
            for candidate in candidates:
                match = pattern.search(candidate)
                if match is not None:
                    break
            for column in columns:
                if match is None:
                    values.setdefault(column.name, None)
                    continue
                group = column.index + 1
                if group > len(match.groups()):
                    raise IllegalArgumentError(
                        "Illegal index value based on parsed regular expression",
                        index=group,
                        regex=pattern.pattern,
                        input=path,
                        group_count=len(match.groups()),
                    )
                values[column.name] = match.group(group)
        return values

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.directory_filter_regex is not None:
            data["directoryFilterRegex"] = self.directory_filter_regex
        if self.filter_regex is not None:
            data["filterRegex"] = self.filter_regex
        data["directoryFilterPartitions"] = list(self.directory_filter_partitions)
        data["filterPartitions"] = list(self.filter_partitions)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartitionDefinition":
        """Build a partition definition from its manifest representation.

        ``directoryPartitions`` and ``partitions`` are accepted as aliases of
        ``directoryFilterPartitions`` and ``filterPartitions``.
        """
        if not isinstance(data, dict):
            raise IllegalArgumentError(
                "Expected partition value to be a JSON object",
                field="partitionDefinition",
                raw_value=data,
            )
        return cls(
            directory_filter_regex=_read_regex(data, "directoryFilterRegex"),
            filter_regex=_read_regex(data, "filterRegex"),
            directory_filter_partitions=_read_names(
                data, ("directoryFilterPartitions", "directoryPartitions")
            ),
            filter_partitions=_read_names(data, ("filterPartitions", "partitions")),
        )


@dataclass(frozen=True)
class LogicalTable:
    """A table materialized from the objects under a root path."""

    name: str
    root_path: str
    data_file_type: DataFileType
    partition_definition: Optional[PartitionDefinition] = None
    columns: Optional[Tuple[Column, ...]] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise IllegalArgumentError(
                "table name must not be blank", field="name", raw_value=self.name
            )
        if not isinstance(self.root_path, str) or not self.root_path.strip():
            raise IllegalArgumentError(
                "root path must not be blank", field="rootPath", raw_value=self.root_path
            )
        if not isinstance(self.data_file_type, DataFileType):
            raise IllegalArgumentError(
                "data file type is not a DataFileType",
                field="dataFileType",
                raw_value=self.data_file_type,
            )
        object.__setattr__(self, "root_path", format_path(self.root_path))
        if self.columns is not None:
            object.__setattr__(self, "columns", tuple(self.columns))

    def __lt__(self, other: "LogicalTable") -> bool:
        return self.name < other.name

    def partition_columns(self) -> List[PartitionColumn]:
        """All partition columns, directory level first, unique by name."""
        if self.partition_definition is None:
            return []
        seen = set()
        columns = []
        for column in (
            self.partition_definition.directory_partitions_as_columns()
            + self.partition_definition.file_partitions_as_columns()
        ):
            if column.name not in seen:
                seen.add(column.name)
                columns.append(column)
        return columns

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "rootPath": self.root_path,
            "dataFileType": self.data_file_type.name,
        }
        if self.partition_definition is not None:
            data["partitionDefinition"] = self.partition_definition.to_dict()
        if self.columns is not None:
            data["columnConfig"] = [column.to_dict() for column in self.columns]
        return data

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], home_directory: Optional[str] = None
    ) -> "LogicalTable":
        """Build a table from one manifest entry.

        Args:
            data: Manifest entry
            home_directory: Replaces a leading ``~~`` in ``rootPath``

        Raises:
            IllegalArgumentError: If a field is missing or malformed
        """
        if not isinstance(data, dict):
            raise IllegalArgumentError(
                "Expected JSON source to be an object when parsing a table",
                raw_value=data,
            )

        name = _read_required_string(data, "name")
        root_path = _substitute_home_directory(
            _read_required_string(data, "rootPath"), home_directory
        )
        data_file_type = DataFileType.from_name(_read_required_string(data, "dataFileType"))

        partition_definition = None
        partition_data = data.get("partitionDefinition", data.get("partitioning"))
        if partition_data is not None:
            partition_definition = PartitionDefinition.from_dict(partition_data)
            if partition_definition.is_empty():
                partition_definition = None

        columns = None
        column_data = data.get("columnConfig")
        if column_data is not None:
            if not isinstance(column_data, list):
                raise IllegalArgumentError(
                    "Expected [columnConfig] to be a JSON array",
                    field="columnConfig",
                    raw_value=column_data,
                )
            columns = tuple(Column.from_dict(entry) for entry in column_data)

        return cls(
            name=name,
            root_path=root_path,
            data_file_type=data_file_type,
            partition_definition=partition_definition,
            columns=columns,
        )

    def __repr__(self) -> str:
        return f"LogicalTable({self.name}, {self.root_path}, {self.data_file_type.name})"


def _partition_columns(
    partition_type: str, regex: Optional[str], names: Sequence[str]
) -> List[PartitionColumn]:
    if regex is None:
        return []
    columns = []
    for index, name in enumerate(names):
        comment = f"{partition_type} partition match [{regex}] index [{index}]"
        columns.append(
            PartitionColumn(
                name=name, type=ColumnType.VARCHAR, comment=comment, hidden=True, index=index
            )
        )
    return columns


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def _ordered_unique(values: Sequence[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values or ()))


def _compile(regex: Optional[str], field_name: str) -> Optional[Pattern]:
    if regex is None:
        return None
    try:
        return re.compile(regex)
    except re.error as e:
        raise IllegalArgumentError(
            f"Bad regular expression passed as filter [{field_name}]",
            field=field_name,
            raw_value=regex,
        ) from e


def _read_regex(data: Dict[str, Any], field_name: str) -> Optional[str]:
    value = data.get(field_name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise IllegalArgumentError(
            f"Expected [{field_name}] to be a textual element",
            field=field_name,
            raw_value=value,
        )
    return value


def _read_names(data: Dict[str, Any], keys: Tuple[str, ...]) -> Tuple[str, ...]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise IllegalArgumentError(
                f"Expected [{key}] to be an array of textual values",
                field=key,
                raw_value=value,
            )
        return tuple(value)
    return ()


def _read_required_string(data: Dict[str, Any], field_name: str) -> str:
    value = data.get(field_name)
    if value is None:
        raise IllegalArgumentError(
            f"Expected JSON source to have [{field_name}] defined when parsing a table",
            field=field_name,
            raw_value=value,
        )
    if not isinstance(value, str):
        raise IllegalArgumentError(
            f"Expected [{field_name}] to be a textual element when parsing a table",
            field=field_name,
            raw_value=value,
        )
    return value


def _substitute_home_directory(path: str, home_directory: Optional[str]) -> str:
    if home_directory is None or not path.startswith(HOME_DIRECTORY_MARKER):
        return path
    return home_directory.rstrip(SEPARATOR) + path[len(HOME_DIRECTORY_MARKER):]

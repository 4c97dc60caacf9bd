"""Handles exchanged with the host query engine.

The family is closed: every handle is a frozen dataclass defined here, and
connector entry points reject any other type with
``UnexpectedHandleTypeError``. Column handles are ``Column`` values.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union, get_args

from .catalog.schema import Column
from .catalog.tables import DataFileType
from .exceptions import UnexpectedHandleTypeError
from .partitions.predicate import ALWAYS_TRUE, PartitionPredicate

H = TypeVar("H")

ColumnHandle = Column


@dataclass(frozen=True)
class TransactionHandle:
    """Unit marker; the connector is read only and has no transactions."""


INSTANCE = TransactionHandle()


@dataclass(frozen=True)
class TableHandle:
    """Identifies a logical table."""

    schema_name: str
    table_name: str

    def __str__(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


@dataclass(frozen=True)
class TableLayoutHandle:
    """A table plus the equality constraints pushed down to split generation."""

    table: TableHandle
    constraints: Tuple[Tuple[str, str], ...] = ()

    @property
    def constraint_map(self) -> Dict[str, str]:
        return dict(self.constraints)

    @classmethod
    def create(
        cls, table: TableHandle, constraints: Optional[Dict[str, str]] = None
    ) -> "TableLayoutHandle":
        return cls(table=table, constraints=tuple(sorted((constraints or {}).items())))


@dataclass(frozen=True)
class Split:
    """A data object to scan, with the predicates that selected it.

    The predicates are provenance only; they are not evaluated again when
    the split is read.
    """

    schema_name: str
    table_name: str
    object_path: str
    data_file_type: DataFileType
    content_length: Optional[int] = None
    directory_predicate: PartitionPredicate = field(default=ALWAYS_TRUE, compare=False)
    file_predicate: PartitionPredicate = field(default=ALWAYS_TRUE, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaName": self.schema_name,
            "tableName": self.table_name,
            "objectPath": self.object_path,
            "dataFileType": self.data_file_type.name,
            "contentLength": self.content_length,
            "directoryPredicate": self.directory_predicate.to_dict(),
            "filePredicate": self.file_predicate.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Split":
        return cls(
            schema_name=data["schemaName"],
            table_name=data["tableName"],
            object_path=data["objectPath"],
            data_file_type=DataFileType.from_name(data["dataFileType"]),
            content_length=data.get("contentLength"),
            directory_predicate=PartitionPredicate.from_dict(
                data.get("directoryPredicate", {})
            ),
            file_predicate=PartitionPredicate.from_dict(data.get("filePredicate", {})),
        )

    def __repr__(self) -> str:
        return f"Split({self.schema_name}.{self.table_name}, {self.object_path})"


Handle = Union[TableHandle, TableLayoutHandle, Split]

HANDLE_TYPES: Tuple[type, ...] = get_args(Handle)


def check_handle(handle: Any, expected: Type[H]) -> H:
    """Return ``handle`` if it is exactly an ``expected``, else raise.

    Subclasses are rejected along with everything outside ``Handle``.

    Raises:
        UnexpectedHandleTypeError: If the handle is of another type
    """
    if expected not in HANDLE_TYPES:
        raise TypeError(f"{expected.__name__} is not a handle type")
    if type(handle) is not expected:
        raise UnexpectedHandleTypeError(expected, type(handle))
    return handle

"""Column metadata classes."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import IllegalArgumentError
from ..types import ColumnType, parse_type


@dataclass(frozen=True)
class Column:
    """Column metadata.

    Also serves as the column handle passed back by the host engine.
    """

    name: str
    type: ColumnType
    comment: Optional[str] = None
    format: Optional[str] = None  # only read by date/timestamp coercion
    hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the manifest column representation."""
        data: Dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.comment is not None:
            data["comment"] = self.comment
        if self.format is not None:
            data["format"] = self.format
        if self.hidden:
            data["hidden"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        """Build a column from its manifest representation.

        Accepts ``column`` as an alias of ``name`` and ``displayName`` as an
        alias of ``comment``.
        """
        if not isinstance(data, dict):
            raise IllegalArgumentError(
                "Expected column definition to be a JSON object", raw_value=data
            )
        name = _read_text(data, ("name", "column"), required=True)
        comment = _read_text(data, ("comment", "displayName"), required=False)
        column_type, implied_format = parse_type(_read_text(data, ("type",), required=True))
        column_format = _read_text(data, ("format",), required=False) or implied_format
        hidden = data.get("hidden", False)
        if not isinstance(hidden, bool):
            raise IllegalArgumentError(
                "Expected column [hidden] to be a boolean", field="hidden", raw_value=hidden
            )
        return cls(
            name=name, type=column_type, comment=comment, format=column_format, hidden=hidden
        )

    def __repr__(self) -> str:
        return f"Column({self.name}, {self.type.value})"


@dataclass(frozen=True)
class PartitionColumn(Column):
    """Column whose value is extracted from an object path by a regex group.

    ``index`` is zero based; the value lives in capture group ``index + 1``.
    """

    index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["index"] = self.index
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartitionColumn":
        column = Column.from_dict(data)
        index = data.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            raise IllegalArgumentError(
                "Expected partition column [index] to be an integer",
                field="index",
                raw_value=index,
            )
        return cls(
            name=column.name,
            type=column.type,
            comment=column.comment,
            format=column.format,
            hidden=column.hidden,
            index=index,
        )

    def __repr__(self) -> str:
        return f"PartitionColumn({self.name}, index={self.index})"


def _read_text(data: Dict[str, Any], keys, required: bool) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise IllegalArgumentError(
                f"Expected JSON [{key}] element to be a string", field=key, raw_value=value
            )
        if not value.strip():
            raise IllegalArgumentError(
                f"Expected JSON [{key}] element to not be blank", field=key, raw_value=value
            )
        return value
    if required:
        raise IllegalArgumentError(
            f"Expected JSON element [{keys[0]}] to not be null", field=keys[0], raw_value=None
        )
    return None

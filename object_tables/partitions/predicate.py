"""Partition predicates: match object paths against constrained regex groups."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

from ..catalog.schema import PartitionColumn
from ..exceptions import IllegalArgumentError
from ..storage.base import SEPARATOR, StoredObject
from ..types import ColumnType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionPredicate:
    """Tests object paths against partition column constraints.

    The regex is searched against the path (directories get a trailing
    separator first). A path the regex does not match at all is kept unless
    the predicate is fail closed. A matching path is kept only if every
    constrained column's capture group equals its constraint value.
    """

    partition_columns: Tuple[PartitionColumn, ...] = ()
    match_values: Tuple[str, ...] = ()
    partition_regex: Optional[str] = None
    fail_closed: bool = False
    _pattern: Optional[Pattern] = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self):
        object.__setattr__(self, "partition_columns", tuple(self.partition_columns))
        object.__setattr__(self, "match_values", tuple(self.match_values))
        if len(self.partition_columns) != len(self.match_values):
            raise IllegalArgumentError(
                "The size of the partition column list isn't equal to match values",
                columns=len(self.partition_columns),
                values=len(self.match_values),
            )
        if self.partition_regex is not None and not self.partition_regex.strip():
            object.__setattr__(self, "partition_regex", None)
        if self.partition_columns and self.partition_regex is None:
            raise IllegalArgumentError(
                "A partition regex is required when partition columns are constrained",
                columns=[column.name for column in self.partition_columns],
            )
        if self.partition_regex is not None:
            object.__setattr__(self, "_pattern", re.compile(self.partition_regex))

    def test(self, path: str, is_directory: bool = False) -> bool:
        """Check whether an object path satisfies the constraints.

        Raises:
            IllegalArgumentError: If a column index has no capture group in the regex
        """
        if not self.partition_columns:
            return True

        if is_directory:
            path += SEPARATOR

        match = self._pattern.search(path)
        if match is None:
            return not self.fail_closed

        group_count = len(match.groups())
        for column, value in zip(self.partition_columns, self.match_values):
            group = column.index + 1
            if group < 1 or group > group_count:
                raise IllegalArgumentError(
                    "Illegal index value based on parsed regular expression",
                    index=group,
                    regex=self.partition_regex,
                    input=path,
                    group_count=group_count,
                )
            if match.group(group) != value:
                return False

        return True

    def test_object(self, obj: StoredObject) -> bool:
        return self.test(obj.path, obj.is_directory)

    def __call__(self, obj: StoredObject) -> bool:
        return self.test_object(obj)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partitionColumns": [column.to_dict() for column in self.partition_columns],
            "matchValues": list(self.match_values),
            "partitionRegex": self.partition_regex,
            "failClosed": self.fail_closed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartitionPredicate":
        return cls(
            partition_columns=tuple(
                PartitionColumn.from_dict(entry) for entry in data.get("partitionColumns", [])
            ),
            match_values=tuple(data.get("matchValues", [])),
            partition_regex=data.get("partitionRegex"),
            fail_closed=bool(data.get("failClosed", False)),
        )


ALWAYS_TRUE = PartitionPredicate()
PartitionPredicate.ALWAYS_TRUE = ALWAYS_TRUE


def create_partition_predicate(
    partition_regex: Optional[str],
    constraints: Mapping[str, Any],
    partition_columns: Sequence[PartitionColumn],
    fail_closed: bool = False,
) -> PartitionPredicate:
    """Build a predicate for one partition level.

    Args:
        partition_regex: Regex of the level (directory or file), may be None
        constraints: Mapping of column name to constraint value
        partition_columns: Partition columns of the level
        fail_closed: Reject paths the regex does not match

    Returns:
        ``ALWAYS_TRUE`` when there is no regex, no columns or no constraints;
        otherwise a predicate over the constrained columns in column order

    Raises:
        IllegalArgumentError: If a constraint is not a single varchar value
    """
    if partition_regex is None or not partition_columns or not constraints:
        return ALWAYS_TRUE

    columns: List[PartitionColumn] = []
    values: List[str] = []
    for column in partition_columns:
        if column.name not in constraints:
            continue
        columns.append(column)
        values.append(_single_varchar_value(column, constraints[column.name]))

    if not columns:
        return ALWAYS_TRUE

    logger.debug(
        f"Partition predicate on [{partition_regex}]: "
        + ", ".join(f"{c.name}={v}" for c, v in zip(columns, values))
    )
    return PartitionPredicate(
        partition_columns=tuple(columns),
        match_values=tuple(values),
        partition_regex=partition_regex,
        fail_closed=fail_closed,
    )


def _single_varchar_value(column: PartitionColumn, domain: Any) -> str:
    if isinstance(domain, (list, tuple, set, frozenset)):
        if len(domain) != 1:
            raise IllegalArgumentError(
                "Expected query parameter for partition to be a single value",
                column=column.name,
                domain=domain,
            )
        domain = next(iter(domain))
    if column.type != ColumnType.VARCHAR or not isinstance(domain, str):
        raise IllegalArgumentError(
            "Expected query parameter for partition to be a varchar",
            column=column.name,
            domain=domain,
            expected_type=ColumnType.VARCHAR.value,
            actual_type=type(domain).__name__,
        )
    return domain

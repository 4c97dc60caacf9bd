"""Extraction of partition constraints from SQL WHERE clauses."""

import logging
from typing import Dict, Iterable, Iterator, Optional, Union

import sqlglot
from sqlglot import exp

logger = logging.getLogger(__name__)


def constraints_from_where(
    where: Union[str, exp.Expression, None],
    partition_names: Iterable[str],
    dialect: str = "duckdb",
    qualifiers: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """Collect equality constraints on partition columns from a WHERE clause.

    Only top-level conjuncts of the form ``column = 'literal'`` (either side)
    or ``column IN ('literal')`` are used. Everything else is left for the
    query engine to evaluate after the scan. When a column is constrained
    more than once the first value wins; the residual filter still rejects
    rows that violate the others.

    Args:
        where: WHERE clause text (without the keyword), a parsed expression,
            or a ``Where`` node
        partition_names: Names of the table's partition columns
        dialect: sqlglot dialect used to parse text
        qualifiers: Table names or aliases a qualified column may use; a
            column qualified with anything else is ignored. Qualified
            columns are accepted as is when None

    Returns:
        Mapping of partition column name to required value
    """
    if where is None:
        return {}

    if isinstance(where, str):
        if not where.strip():
            return {}
        where = sqlglot.parse_one(where, dialect=dialect)

    if isinstance(where, exp.Where):
        where = where.this

    names = set(partition_names)
    allowed = None if qualifiers is None else set(qualifiers)
    constraints: Dict[str, str] = {}
    for term in _conjuncts(where):
        found = _equality_constraint(term)
        if found is None:
            continue
        column, value = found
        if column.table and allowed is not None and column.table not in allowed:
            continue
        if column.name in names and column.name not in constraints:
            constraints[column.name] = value

    if constraints:
        logger.debug(f"Partition constraints from WHERE clause: {constraints}")
    return constraints


def _conjuncts(expression: exp.Expression) -> Iterator[exp.Expression]:
    if isinstance(expression, exp.And):
        yield from _conjuncts(expression.left)
        yield from _conjuncts(expression.right)
    elif isinstance(expression, exp.Paren):
        yield from _conjuncts(expression.this)
    else:
        yield expression


def _equality_constraint(term: exp.Expression) -> Optional[tuple]:
    if isinstance(term, exp.EQ):
        left, right = term.left, term.right
        if isinstance(right, exp.Column) and isinstance(left, exp.Literal):
            left, right = right, left
        if isinstance(left, exp.Column) and _is_string_literal(right):
            return left, right.this
        return None

    if isinstance(term, exp.In):
        values = term.expressions
        if (
            isinstance(term.this, exp.Column)
            and len(values) == 1
            and _is_string_literal(values[0])
        ):
            return term.this, values[0].this
    return None


def _is_string_literal(expression: exp.Expression) -> bool:
    return isinstance(expression, exp.Literal) and expression.is_string

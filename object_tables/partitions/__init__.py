"""Partition pruning: path predicates and constraint extraction."""

from .predicate import PartitionPredicate, ALWAYS_TRUE, create_partition_predicate
from .constraints import constraints_from_where

__all__ = [
    "PartitionPredicate",
    "ALWAYS_TRUE",
    "create_partition_predicate",
    "constraints_from_where",
]

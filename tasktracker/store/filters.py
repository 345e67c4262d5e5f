"""Predicate trees understood by the entity store.

Filters are built from model attribute names, never from raw request
strings; the query translator is responsible for mapping and whitelisting
wire names before it builds one of these.
"""
from dataclasses import dataclass
from typing import Any, Iterable, Tuple, Union

OPERATORS = frozenset({"eq", "ne", "gt", "gte", "lt", "lte", "in", "nin"})


@dataclass(frozen=True)
class Compare:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"unsupported operator: {self.op}")


@dataclass(frozen=True)
class And:
    clauses: Tuple["Filter", ...]


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Filter", ...]


Filter = Union[Compare, And, Or]


def eq(field: str, value: Any) -> Compare:
    return Compare(field, "eq", value)


def ne(field: str, value: Any) -> Compare:
    return Compare(field, "ne", value)


def in_(field: str, values: Iterable[Any]) -> Compare:
    return Compare(field, "in", tuple(values))


def all_of(*clauses: Filter) -> Filter:
    if len(clauses) == 1:
        return clauses[0]
    return And(tuple(clauses))

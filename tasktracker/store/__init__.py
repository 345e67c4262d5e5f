from .base import TASKS, USERS, Append, EntityStore, Remove, SortKey
from .filters import And, Compare, Filter, Or, all_of, eq, in_, ne
from .sql import SqlEntityStore

__all__ = [
    "TASKS",
    "USERS",
    "Append",
    "Remove",
    "EntityStore",
    "SortKey",
    "SqlEntityStore",
    "And",
    "Compare",
    "Filter",
    "Or",
    "all_of",
    "eq",
    "in_",
    "ne",
]

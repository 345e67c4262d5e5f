from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlmodel import SQLModel

from .filters import Filter

USERS = "users"
TASKS = "tasks"

# (attribute, descending)
SortKey = Tuple[str, bool]


@dataclass(frozen=True)
class Append:
    """Patch value: add ``value`` to a list attribute unless already present.

    ``index`` inserts at that position instead of at the end.
    """

    value: Any
    index: Optional[int] = None


@dataclass(frozen=True)
class Remove:
    """Patch value: drop every occurrence of ``value`` from a list attribute."""

    value: Any


class EntityStore(Protocol):
    """Single-document persistence primitives for the users and tasks collections.

    Calls are independent: nothing here spans two documents atomically.
    Every method may raise ``StoreUnavailable``.
    """

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Sequence[SortKey] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[SQLModel]:
        ...

    def find_one(self, collection: str, filter: Filter) -> Optional[SQLModel]:
        ...

    def find_by_id(self, collection: str, entity_id: str) -> Optional[SQLModel]:
        ...

    def insert(self, collection: str, entity: SQLModel) -> SQLModel:
        ...

    def update_by_id(
        self, collection: str, entity_id: str, patch: Mapping[str, Any]
    ) -> Optional[SQLModel]:
        ...

    def update_many(self, collection: str, filter: Filter, patch: Mapping[str, Any]) -> int:
        ...

    def delete_by_id(self, collection: str, entity_id: str) -> bool:
        ...

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        ...

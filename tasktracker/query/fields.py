"""Per-collection whitelist of the fields a list query may touch.

Wire names are the camelCase names used in request and response bodies;
``attr`` is the model attribute the store understands.
"""
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter

from ..models.task import to_naive_utc
from ..store import TASKS, USERS

ID_ALIASES = ("_id",)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    attr: str
    type: Any
    filterable: bool = True
    sortable: bool = True

    def coerce(self, value: Any) -> Any:
        """Validate ``value`` against the field type; raises pydantic.ValidationError."""
        if value is None:
            return None
        value = _adapter(self.type).validate_python(value)
        if isinstance(value, datetime):
            value = to_naive_utc(value)
        return value


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


@dataclass(frozen=True)
class CollectionFields:
    collection: str
    fields: Tuple[FieldSpec, ...]

    def lookup(self, name: str) -> Optional[FieldSpec]:
        if name in ID_ALIASES:
            name = "id"
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


USER_FIELDS = CollectionFields(
    USERS,
    (
        FieldSpec("id", "id", str),
        FieldSpec("name", "name", str),
        FieldSpec("email", "email", str),
        FieldSpec("pendingTasks", "pending_tasks", List[str], filterable=False, sortable=False),
        FieldSpec("dateCreated", "date_created", datetime),
    ),
)

TASK_FIELDS = CollectionFields(
    TASKS,
    (
        FieldSpec("id", "id", str),
        FieldSpec("name", "name", str),
        FieldSpec("description", "description", str),
        FieldSpec("deadline", "deadline", datetime),
        FieldSpec("completed", "completed", bool),
        FieldSpec("assignedUser", "assigned_user", str),
        FieldSpec("assignedUserName", "assigned_user_name", str),
        FieldSpec("dateCreated", "date_created", datetime),
    ),
)

COLLECTION_FIELDS: Dict[str, CollectionFields] = {USERS: USER_FIELDS, TASKS: TASK_FIELDS}


def fields_for(collection: str) -> CollectionFields:
    try:
        return COLLECTION_FIELDS[collection]
    except KeyError:
        raise ValueError(f"unknown collection: {collection}") from None

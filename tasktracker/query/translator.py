"""Translate list-query request parameters into a plan the entity store can run.

Recognized parameters, all optional and string-valued:

``where``  JSON object, e.g. ``{"completed": true, "deadline": {"$lt": "2030-01-01"}}``
``sort``   JSON object of field to direction, e.g. ``{"deadline": 1, "name": -1}``
``select`` JSON object of field to flag, e.g. ``{"name": 1}`` or ``{"description": 0}``
``skip``   non-negative integer
``limit``  non-negative integer, ``0`` meaning no limit
``count``  ``"true"`` to return only the number of matching documents

Only whitelisted fields and operators are accepted (see ``fields.py``).
Stages run in the order filter, sort, skip, limit, project.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError
from sqlmodel import SQLModel

from ..errors import BadRequest
from ..store import And, Compare, EntityStore, Filter, Or, SortKey, all_of
from .fields import CollectionFields, FieldSpec, fields_for

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = {
    "$eq": "eq",
    "$ne": "ne",
    "$gt": "gt",
    "$gte": "gte",
    "$lt": "lt",
    "$lte": "lte",
    "$in": "in",
    "$nin": "nin",
}
LOGICAL_OPERATORS = {"$and": And, "$or": Or}

# Deepest $and/$or nesting accepted in a where clause.
MAX_WHERE_DEPTH = 32

SORT_DIRECTIONS = {
    1: False,
    -1: True,
    "1": False,
    "-1": True,
    "asc": False,
    "ascending": False,
    "desc": True,
    "descending": True,
}


@dataclass(frozen=True)
class Projection:
    fields: FrozenSet[str]
    include: bool = True

    def apply(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        # The identifier survives every projection.
        if self.include:
            return {k: v for k, v in doc.items() if k == "id" or k in self.fields}
        return {k: v for k, v in doc.items() if k == "id" or k not in self.fields}


@dataclass(frozen=True)
class QueryPlan:
    collection: str
    where: Optional[Filter] = None
    sort: Tuple[SortKey, ...] = ()
    projection: Optional[Projection] = None
    skip: int = 0
    limit: Optional[int] = None
    count: bool = False


def _decode_json(raw: str, param: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        raise BadRequest(f"Invalid JSON in '{param}' parameter") from None
    except RecursionError:
        raise BadRequest(f"'{param}' parameter is nested too deeply") from None


def _decode_object(raw: str, param: str) -> Dict[str, Any]:
    doc = _decode_json(raw, param)
    if not isinstance(doc, dict):
        raise BadRequest(f"'{param}' parameter must be a JSON object")
    return doc


def _lookup(fields: CollectionFields, name: str) -> FieldSpec:
    spec = fields.lookup(name)
    if spec is None:
        raise BadRequest(f"Unknown field '{name}' for {fields.collection}")
    return spec


def _coerce(spec: FieldSpec, value: Any) -> Any:
    try:
        return spec.coerce(value)
    except (ValidationError, ValueError):
        raise BadRequest(f"Invalid value for '{spec.name}': {value!r}") from None


# ---- where ----

def parse_where(raw: str, collection: str) -> Optional[Filter]:
    return _parse_conditions(_decode_object(raw, "where"), fields_for(collection))


def _parse_conditions(
    doc: Mapping[str, Any], fields: CollectionFields, depth: int = 0
) -> Optional[Filter]:
    if depth > MAX_WHERE_DEPTH:
        raise BadRequest(f"'where' nests $and/$or deeper than {MAX_WHERE_DEPTH} levels")
    clauses: List[Filter] = []
    for key, value in doc.items():
        if key in LOGICAL_OPERATORS:
            if not isinstance(value, list) or not value:
                raise BadRequest(f"'{key}' expects a non-empty array of conditions")
            branches = []
            for item in value:
                if not isinstance(item, dict):
                    raise BadRequest(f"'{key}' expects a non-empty array of conditions")
                branches.append(_parse_conditions(item, fields, depth + 1) or And(()))
            clauses.append(LOGICAL_OPERATORS[key](tuple(branches)))
        elif key.startswith("$"):
            raise BadRequest(f"Unsupported operator '{key}'")
        else:
            clauses.extend(_parse_field_condition(key, value, fields))
    if not clauses:
        return None
    return all_of(*clauses)


def _parse_field_condition(name: str, value: Any, fields: CollectionFields) -> List[Compare]:
    spec = _lookup(fields, name)
    if not spec.filterable:
        raise BadRequest(f"Field '{name}' cannot be used in 'where'")

    if not isinstance(value, dict):
        return [Compare(spec.attr, "eq", _coerce(spec, value))]
    if not value or not all(k.startswith("$") for k in value):
        raise BadRequest(f"Invalid condition for '{name}'")

    out = []
    for op_key, operand in value.items():
        op = COMPARISON_OPERATORS.get(op_key)
        if op is None:
            raise BadRequest(f"Unsupported operator '{op_key}'")
        if op in ("in", "nin"):
            if not isinstance(operand, list):
                raise BadRequest(f"'{op_key}' expects an array")
            operand = tuple(_coerce(spec, item) for item in operand)
        else:
            operand = _coerce(spec, operand)
        out.append(Compare(spec.attr, op, operand))
    return out


# ---- sort ----

def parse_sort(raw: str, collection: str) -> Tuple[SortKey, ...]:
    fields = fields_for(collection)
    keys = []
    for name, direction in _decode_object(raw, "sort").items():
        spec = _lookup(fields, name)
        if not spec.sortable:
            raise BadRequest(f"Field '{name}' cannot be used in 'sort'")
        if isinstance(direction, str):
            direction = direction.strip().lower()
        if (
            isinstance(direction, bool)
            or not isinstance(direction, (int, float, str))
            or direction not in SORT_DIRECTIONS
        ):
            raise BadRequest(f"Invalid sort direction for '{name}': {direction!r}")
        keys.append((spec.attr, SORT_DIRECTIONS[direction]))
    return tuple(keys)


# ---- select ----

def parse_projection(raw: Optional[str], collection: str) -> Optional[Projection]:
    """Parse a ``select`` parameter; ``None`` means every field."""
    if not raw:
        return None
    fields = fields_for(collection)
    included, excluded = set(), set()
    id_flag = None
    for name, flag in _decode_object(raw, "select").items():
        spec = _lookup(fields, name)
        if isinstance(flag, bool):
            flag = int(flag)
        if flag not in (0, 1):
            raise BadRequest(f"Invalid select flag for '{name}': {flag!r}")
        if spec.name == "id":
            id_flag = flag
        elif flag:
            included.add(spec.name)
        else:
            excluded.add(spec.name)

    if included and excluded:
        raise BadRequest("'select' cannot mix included and excluded fields")
    if included:
        return Projection(frozenset(included), include=True)
    if excluded:
        return Projection(frozenset(excluded), include=False)
    if id_flag:
        return Projection(frozenset(), include=True)
    return None


# ---- skip / limit ----

def parse_non_negative_int(raw: str, param: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"'{param}' must be a non-negative integer") from None
    if value < 0:
        raise BadRequest(f"'{param}' must be a non-negative integer")
    return value


# ---- plan ----

def translate(
    params: Mapping[str, Optional[str]],
    collection: str,
    *,
    default_limit: Optional[int] = None,
) -> QueryPlan:
    """Build a QueryPlan from raw request parameters. Raises BadRequest."""
    try:
        where = parse_where(params["where"], collection) if params.get("where") else None

        if params.get("count") == "true":
            return QueryPlan(collection=collection, where=where, count=True)

        sort = parse_sort(params["sort"], collection) if params.get("sort") else ()
        projection = parse_projection(params.get("select"), collection)
        skip = parse_non_negative_int(params["skip"], "skip") if params.get("skip") else 0
        limit = parse_non_negative_int(params["limit"], "limit") if params.get("limit") else None
    except BadRequest as exc:
        logger.debug("Rejected %s query %s: %s", collection, dict(params), exc.message)
        raise

    if limit is None:
        limit = default_limit

    return QueryPlan(
        collection=collection,
        where=where,
        sort=sort,
        projection=projection,
        skip=skip,
        limit=limit,
    )


def run_query(
    store: EntityStore,
    plan: QueryPlan,
    serialize: Callable[[SQLModel], Dict[str, Any]],
) -> Union[int, List[Dict[str, Any]]]:
    """Execute ``plan``: a count, or the serialized (and projected) documents."""
    if plan.count:
        return store.count(plan.collection, plan.where)

    entities = store.find(
        plan.collection,
        plan.where,
        sort=plan.sort,
        skip=plan.skip,
        limit=plan.limit,
    )
    docs = [serialize(entity) for entity in entities]
    if plan.projection is not None:
        docs = [plan.projection.apply(doc) for doc in docs]
    return docs

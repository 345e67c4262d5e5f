import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Type

from sqlalchemy import and_, false, func, or_, true, update
from sqlalchemy import select as sa_select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from ..errors import Conflict, StoreUnavailable
from ..models import Task, User
from .base import TASKS, USERS, Append, Remove, SortKey
from .filters import And, Compare, Filter, Or

logger = logging.getLogger(__name__)

MODELS = {USERS: User, TASKS: Task}


def _model_for(collection: str) -> Type[SQLModel]:
    try:
        return MODELS[collection]
    except KeyError:
        raise ValueError(f"unknown collection: {collection}") from None


def compile_filter(model: Type[SQLModel], node: Filter):
    """Turn a predicate tree into a SQLAlchemy boolean clause for ``model``."""
    if isinstance(node, And):
        if not node.clauses:
            return true()
        return and_(*(compile_filter(model, c) for c in node.clauses))
    if isinstance(node, Or):
        if not node.clauses:
            return false()
        return or_(*(compile_filter(model, c) for c in node.clauses))
    if not isinstance(node, Compare):
        raise TypeError(f"not a filter node: {node!r}")

    column = getattr(model, node.field)
    op, value = node.op, node.value
    if op == "eq":
        return column.is_(None) if value is None else column == value
    if op == "ne":
        return column.is_not(None) if value is None else column != value
    if op == "gt":
        return column > value
    if op == "gte":
        return column >= value
    if op == "lt":
        return column < value
    if op == "lte":
        return column <= value
    if op == "in":
        return column.in_(list(value))
    return column.not_in(list(value))


class SqlEntityStore:
    """Entity store on top of a SQLAlchemy engine.

    Each call opens its own session and commits on its own, so a sequence of
    calls is never atomic as a whole. ``update_by_id`` does its
    read-modify-write inside a single transaction.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with Session(self._engine, expire_on_commit=False) as session:
                yield session
        except IntegrityError as exc:
            logger.warning("Store %s rejected by constraint: %s", action, exc.orig)
            raise Conflict(
                "A document with the same unique value already exists",
                data=str(exc.orig),
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("Store %s failed", action)
            raise StoreUnavailable("Entity store unavailable", data=str(exc)) from exc

    # ---- reads ----

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Sequence[SortKey] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[SQLModel]:
        model = _model_for(collection)
        statement = select(model)
        if filter is not None:
            statement = statement.where(compile_filter(model, filter))
        for attr, descending in sort:
            column = getattr(model, attr)
            statement = statement.order_by(column.desc() if descending else column.asc())
        if skip:
            statement = statement.offset(skip)
        if limit:
            statement = statement.limit(limit)

        with self._session(f"find {collection}") as session:
            return list(session.exec(statement).all())

    def find_one(self, collection: str, filter: Filter) -> Optional[SQLModel]:
        found = self.find(collection, filter, limit=1)
        return found[0] if found else None

    def find_by_id(self, collection: str, entity_id: str) -> Optional[SQLModel]:
        model = _model_for(collection)
        with self._session(f"get {collection}") as session:
            return session.get(model, entity_id)

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        model = _model_for(collection)
        statement = sa_select(func.count()).select_from(model)
        if filter is not None:
            statement = statement.where(compile_filter(model, filter))
        with self._session(f"count {collection}") as session:
            return int(session.execute(statement).scalar_one())

    # ---- writes ----

    def insert(self, collection: str, entity: SQLModel) -> SQLModel:
        _model_for(collection)
        with self._session(f"insert {collection}") as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            logger.debug("Inserted %s id=%s", collection, entity.id)
            return entity

    def update_by_id(
        self, collection: str, entity_id: str, patch: Mapping[str, Any]
    ) -> Optional[SQLModel]:
        model = _model_for(collection)
        with self._session(f"update {collection}") as session:
            entity = session.get(model, entity_id)
            if entity is None:
                return None
            for attr, value in patch.items():
                if attr not in model.model_fields:
                    raise ValueError(f"{collection} has no field {attr!r}")
                if isinstance(value, Append):
                    items = list(getattr(entity, attr) or [])
                    if value.value not in items:
                        if value.index is None:
                            items.append(value.value)
                        else:
                            items.insert(value.index, value.value)
                    value = items
                elif isinstance(value, Remove):
                    value = [item for item in (getattr(entity, attr) or []) if item != value.value]
                setattr(entity, attr, value)
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def update_many(self, collection: str, filter: Filter, patch: Mapping[str, Any]) -> int:
        model = _model_for(collection)
        if any(isinstance(v, (Append, Remove)) for v in patch.values()):
            raise ValueError("update_many only accepts plain field values")
        statement = (
            update(model)
            .where(compile_filter(model, filter))
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        with self._session(f"update_many {collection}") as session:
            result = session.execute(statement)
            session.commit()
            return int(result.rowcount or 0)

    def delete_by_id(self, collection: str, entity_id: str) -> bool:
        model = _model_for(collection)
        with self._session(f"delete {collection}") as session:
            entity = session.get(model, entity_id)
            if entity is None:
                return False
            session.delete(entity)
            session.commit()
            return True

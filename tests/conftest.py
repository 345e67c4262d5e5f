import os

# Must be set before tasktracker.config is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SAGA_COMPENSATE"] = "false"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from tasktracker.database import create_tables, drop_tables, store as sql_store
from tasktracker.main import app
from tasktracker.models import Task, User
from tasktracker.services.relationships import RelationshipEngine
from tasktracker.store import TASKS, USERS

DEADLINE = datetime(2030, 1, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def fresh_tables():
    """Every test starts from empty users and tasks tables."""
    drop_tables()
    create_tables()
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def store():
    return sql_store


@pytest.fixture()
def relationships(store):
    return RelationshipEngine(store)


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_user(store):
    def _make(name="Ann", email=None, pending_tasks=None):
        user = User(name=name, email=email or f"{name.lower()}@x.com", pending_tasks=pending_tasks or [])
        return store.insert(USERS, user)

    return _make


@pytest.fixture()
def make_task(store):
    def _make(name="T1", **fields):
        fields.setdefault("deadline", DEADLINE)
        return store.insert(TASKS, Task(name=name, **fields))

    return _make

from datetime import datetime

import pytest

from tasktracker.database import drop_tables
from tasktracker.errors import Conflict, StoreUnavailable
from tasktracker.models import UNASSIGNED, User
from tasktracker.store import TASKS, USERS, Append, Remove, all_of, eq, in_, ne
from tasktracker.store.filters import Compare, Or


def test_insert_assigns_id_and_defaults(store, make_task):
    task = make_task("Write report")

    loaded = store.find_by_id(TASKS, task.id)
    assert loaded.id
    assert loaded.name == "Write report"
    assert loaded.description == ""
    assert loaded.completed is False
    assert loaded.assigned_user == ""
    assert loaded.assigned_user_name == UNASSIGNED
    assert isinstance(loaded.date_created, datetime)


def test_find_by_id_missing_returns_none(store):
    assert store.find_by_id(USERS, "nope") is None


def test_find_filters_sorts_and_pages(store, make_task):
    make_task("b", completed=True)
    make_task("a", completed=True)
    make_task("c", completed=False)
    make_task("d", completed=True)

    names = [t.name for t in store.find(TASKS, eq("completed", True), sort=[("name", False)])]
    assert names == ["a", "b", "d"]

    names = [t.name for t in store.find(TASKS, eq("completed", True), sort=[("name", True)], skip=1, limit=1)]
    assert names == ["b"]


def test_composite_sort(store, make_task):
    make_task("x", deadline=datetime(2030, 1, 2))
    make_task("y", deadline=datetime(2030, 1, 1))
    make_task("z", deadline=datetime(2030, 1, 1))

    tasks = store.find(TASKS, sort=[("deadline", False), ("name", True)])
    assert [t.name for t in tasks] == ["z", "y", "x"]


def test_comparison_and_set_operators(store, make_task):
    early = make_task("early", deadline=datetime(2029, 6, 1))
    late = make_task("late", deadline=datetime(2031, 6, 1))

    assert [t.id for t in store.find(TASKS, Compare("deadline", "lt", datetime(2030, 1, 1)))] == [early.id]
    assert [t.id for t in store.find(TASKS, Compare("deadline", "gte", datetime(2030, 1, 1)))] == [late.id]
    assert [t.id for t in store.find(TASKS, Compare("id", "nin", (early.id,)))] == [late.id]
    assert store.count(TASKS, in_("id", [])) == 0
    assert store.count(TASKS, Or((eq("name", "early"), eq("name", "late")))) == 2
    assert store.count(TASKS, ne("name", "early")) == 1


def test_count(store, make_task):
    make_task("a", completed=True)
    make_task("b")

    assert store.count(TASKS) == 2
    assert store.count(TASKS, eq("completed", True)) == 1


def test_find_one(store, make_user):
    ann = make_user("Ann", "a@x.com")

    assert store.find_one(USERS, eq("email", "a@x.com")).id == ann.id
    assert store.find_one(USERS, eq("email", "zzz@x.com")) is None


def test_update_by_id_append_is_idempotent_and_remove_drops_all(store, make_user):
    ann = make_user(pending_tasks=["t1"])

    store.update_by_id(USERS, ann.id, {"pending_tasks": Append("t2")})
    store.update_by_id(USERS, ann.id, {"pending_tasks": Append("t2")})
    assert store.find_by_id(USERS, ann.id).pending_tasks == ["t1", "t2"]

    updated = store.update_by_id(USERS, ann.id, {"pending_tasks": Remove("t1"), "name": "Annie"})
    assert updated.pending_tasks == ["t2"]
    assert updated.name == "Annie"


def test_update_by_id_append_at_index(store, make_user):
    ann = make_user(pending_tasks=["t1", "t3"])

    updated = store.update_by_id(USERS, ann.id, {"pending_tasks": Append("t2", index=1)})
    assert updated.pending_tasks == ["t1", "t2", "t3"]

    updated = store.update_by_id(USERS, ann.id, {"pending_tasks": Append("t3", index=0)})
    assert updated.pending_tasks == ["t1", "t2", "t3"]


def test_update_by_id_missing_returns_none(store):
    assert store.update_by_id(USERS, "nope", {"name": "x"}) is None


def test_update_by_id_rejects_unknown_fields(store, make_user):
    ann = make_user()
    with pytest.raises(ValueError):
        store.update_by_id(USERS, ann.id, {"password": "x"})


def test_update_many_returns_matched_count(store, make_task):
    a = make_task("a", assigned_user="u1", assigned_user_name="Ann")
    make_task("b", assigned_user="u1", assigned_user_name="Ann")
    make_task("c")

    changed = store.update_many(
        TASKS,
        all_of(eq("assigned_user", "u1"), ne("id", a.id)),
        {"assigned_user": "", "assigned_user_name": UNASSIGNED},
    )

    assert changed == 1
    assert store.count(TASKS, eq("assigned_user", "u1")) == 1


def test_update_many_rejects_list_operations(store):
    with pytest.raises(ValueError):
        store.update_many(USERS, eq("name", "Ann"), {"pending_tasks": Append("t1")})


def test_delete_by_id(store, make_task):
    task = make_task()

    assert store.delete_by_id(TASKS, task.id) is True
    assert store.delete_by_id(TASKS, task.id) is False
    assert store.find_by_id(TASKS, task.id) is None


def test_duplicate_email_is_a_conflict(store, make_user):
    make_user("Ann", "a@x.com")

    with pytest.raises(Conflict):
        store.insert(USERS, User(name="Other", email="a@x.com"))


def test_database_errors_become_store_unavailable(store):
    drop_tables()

    with pytest.raises(StoreUnavailable) as info:
        store.count(USERS)
    assert info.value.status_code == 500
    assert "users" in info.value.data


def test_unknown_collection(store):
    with pytest.raises(ValueError):
        store.find("projects")

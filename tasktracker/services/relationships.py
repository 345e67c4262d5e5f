"""Keeps Task.assigned_user and User.pending_tasks consistent.

The two sides live in separate collections and the store only offers
single-document writes, so every mutation that touches an assignment is run
as a ``Saga`` of individual writes. All checks (referenced documents exist,
email is free) happen before the first write; a store failure part-way through
leaves the earlier writes in place unless compensation is enabled.

Invariants restored by every public method:

- a task with ``assigned_user`` set is listed exactly once in that user's
  ``pending_tasks`` and in no other user's list;
- an unassigned task has ``assigned_user_name == UNASSIGNED`` and is listed
  nowhere;
- ``assigned_user_name`` is the assignee's name as of the last assignment write.
"""
import logging
from functools import partial
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import Conflict, InvalidReference, NotFound
from ..models import Task, User
from ..models.task import UNASSIGNED, unassigned_patch
from ..schemas.task import TaskCreate, TaskUpdate
from ..schemas.user import UserCreate, UserUpdate
from ..store import TASKS, USERS, Append, EntityStore, Remove, all_of, eq, in_
from .saga import Saga

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class RelationshipEngine:
    def __init__(self, store: EntityStore, *, compensate: bool = False) -> None:
        self.store = store
        self.compensate = compensate

    def _saga(self, name: str) -> Saga:
        return Saga(name, compensate=self.compensate)

    # ---- lookups and checks ----

    def get_user(self, user_id: str) -> User:
        user = self.store.find_by_id(USERS, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_task(self, task_id: str) -> Task:
        task = self.store.find_by_id(TASKS, task_id)
        if task is None:
            raise NotFound("Task not found")
        return task

    def _require_assignee(self, user_id: str) -> User:
        user = self.store.find_by_id(USERS, user_id)
        if user is None:
            raise InvalidReference("Assigned user not found")
        return user

    def _require_tasks(self, task_ids: List[str]) -> List[Task]:
        if not task_ids:
            return []
        found = {task.id: task for task in self.store.find(TASKS, in_("id", task_ids))}
        missing = [task_id for task_id in task_ids if task_id not in found]
        if missing:
            raise InvalidReference(f"Pending task not found: {', '.join(missing)}")
        return [found[task_id] for task_id in task_ids]

    def _ensure_email_free(self, email: str, *, exclude_id: Optional[str] = None) -> None:
        existing = self.store.find_one(USERS, eq("email", email))
        if existing is not None and existing.id != exclude_id:
            raise Conflict("A user with this email already exists")

    # ---- single writes used as saga steps ----

    def _append_pending(self, user_id: str, task_id: str) -> User:
        user = self.store.update_by_id(USERS, user_id, {"pending_tasks": Append(task_id)})
        if user is None:
            raise InvalidReference("Assigned user not found")
        return user

    def _remove_pending(self, user_id: str, task_id: str) -> Optional[User]:
        # The previous owner may be gone already; nothing to clean up then.
        return self.store.update_by_id(USERS, user_id, {"pending_tasks": Remove(task_id)})

    def _write(self, collection: str, entity_id: str, patch: Dict, missing: str):
        entity = self.store.update_by_id(collection, entity_id, patch)
        if entity is None:
            raise NotFound(missing)
        return entity

    def _delete(self, collection: str, entity_id: str, missing: str) -> None:
        if not self.store.delete_by_id(collection, entity_id):
            raise NotFound(missing)

    def _restore_assignments(self, previous: Dict[str, Tuple[str, str]]) -> None:
        for task_id, (user_id, user_name) in previous.items():
            self.store.update_by_id(
                TASKS, task_id, {"assigned_user": user_id, "assigned_user_name": user_name}
            )

    def _queue_release(self, saga: Saga, description: str, user_id: str, task_id: str) -> None:
        """Queue removing ``task_id`` from a user's list.

        Compensating the step puts the id back at the position it was taken from.
        """
        position: Dict[str, int] = {}

        def release() -> Optional[User]:
            user = self.store.find_by_id(USERS, user_id)
            if user is None:
                return None
            if task_id in user.pending_tasks:
                position["index"] = user.pending_tasks.index(task_id)
            return self._remove_pending(user_id, task_id)

        def restore() -> None:
            if "index" in position:
                patch = {"pending_tasks": Append(task_id, index=position["index"])}
                self.store.update_by_id(USERS, user_id, patch)

        saga.step(description, release, restore)

    def _claim_tasks(self, saga: Saga, user_id: str, user_name: str, tasks: List[Task]) -> None:
        """Queue the steps that make ``user_id`` the owner of every task in ``tasks``.

        A task listed by another user is removed from that user's list first;
        the list being written always wins.
        """
        for task in tasks:
            holder = task.assigned_user
            if holder and holder != user_id:
                self._queue_release(saga, f"take task {task.id} from user {holder}", holder, task.id)
        if tasks:
            previous = {task.id: (task.assigned_user, task.assigned_user_name) for task in tasks}
            saga.step(
                f"assign {len(tasks)} task(s) to user {user_id}",
                partial(
                    self.store.update_many,
                    TASKS,
                    in_("id", list(previous)),
                    {"assigned_user": user_id, "assigned_user_name": user_name},
                ),
                partial(self._restore_assignments, previous),
            )

    # ---- tasks ----

    def create_task(self, data: TaskCreate) -> Task:
        assignee = self._require_assignee(data.assigned_user) if data.assigned_user else None

        task = Task(
            name=data.name,
            description=data.description,
            deadline=data.deadline,
            completed=data.completed,
            assigned_user=assignee.id if assignee else "",
            assigned_user_name=assignee.name if assignee else UNASSIGNED,
        )

        saga = self._saga("create task")
        # The user is updated first: a failed insert then leaves a stale id in
        # the user's list rather than a task pointing at a user who never heard of it.
        if assignee is not None:
            saga.step(
                f"add task {task.id} to user {assignee.id}",
                partial(self._append_pending, assignee.id, task.id),
                partial(self._remove_pending, assignee.id, task.id),
            )
        saga.step(
            f"insert task {task.id}",
            partial(self.store.insert, TASKS, task),
            partial(self.store.delete_by_id, TASKS, task.id),
        )
        created = saga.run()

        if assignee is not None:
            logger.info("Task %s created and assigned to user %s", created.id, assignee.id)
        else:
            logger.info("Task %s created unassigned", created.id)
        return created

    def update_task(self, task_id: str, data: TaskUpdate) -> Task:
        task = self.get_task(task_id)
        old_user, new_user = task.assigned_user, data.assigned_user

        patch = {
            "name": data.name,
            "description": data.description,
            "deadline": data.deadline,
            "completed": data.completed,
        }

        saga = self._saga("update task")
        if new_user != old_user:
            assignee = self._require_assignee(new_user) if new_user else None
            if old_user:
                self._queue_release(saga, f"remove task {task.id} from user {old_user}", old_user, task.id)
            if assignee is not None:
                saga.step(
                    f"add task {task.id} to user {assignee.id}",
                    partial(self._append_pending, assignee.id, task.id),
                    partial(self._remove_pending, assignee.id, task.id),
                )
                patch.update(assigned_user=assignee.id, assigned_user_name=assignee.name)
            else:
                patch.update(unassigned_patch())

        saga.step(
            f"write task {task.id}",
            partial(self._write, TASKS, task.id, patch, "Task not found"),
        )
        updated = saga.run()

        if new_user != old_user:
            logger.info(
                "Task %s reassigned from %r to %r", task.id, old_user or UNASSIGNED, new_user or UNASSIGNED
            )
        return updated

    def delete_task(self, task_id: str) -> None:
        task = self.get_task(task_id)

        saga = self._saga("delete task")
        if task.assigned_user:
            self._queue_release(
                saga, f"remove task {task.id} from user {task.assigned_user}", task.assigned_user, task.id
            )
        saga.step(
            f"delete task {task.id}",
            partial(self._delete, TASKS, task.id, "Task not found"),
        )
        saga.run()
        logger.info("Task %s deleted", task.id)

    # ---- users ----

    def create_user(self, data: UserCreate) -> User:
        self._ensure_email_free(data.email)
        pending = _unique(data.pending_tasks or [])
        tasks = self._require_tasks(pending)

        user = User(name=data.name, email=data.email, pending_tasks=pending)

        saga = self._saga("create user")
        saga.step(
            f"insert user {user.id}",
            partial(self.store.insert, USERS, user),
            partial(self.store.delete_by_id, USERS, user.id),
        )
        self._claim_tasks(saga, user.id, data.name, tasks)
        saga.run()

        logger.info("User %s created with %d pending task(s)", user.id, len(pending))
        return user

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = self.get_user(user_id)
        if data.email != user.email:
            self._ensure_email_free(data.email, exclude_id=user.id)

        patch = {"name": data.name, "email": data.email}

        saga = self._saga("update user")
        if data.pending_tasks is not None:
            pending = _unique(data.pending_tasks)
            tasks = self._require_tasks(pending)

            kept = set(pending)
            dropped = [task_id for task_id in user.pending_tasks if task_id not in kept]
            if dropped:
                saga.step(
                    f"unassign {len(dropped)} task(s) dropped by user {user.id}",
                    partial(
                        self.store.update_many,
                        TASKS,
                        all_of(in_("id", dropped), eq("assigned_user", user.id)),
                        unassigned_patch(),
                    ),
                    partial(
                        self.store.update_many,
                        TASKS,
                        all_of(in_("id", dropped), eq("assigned_user", "")),
                        {"assigned_user": user.id, "assigned_user_name": user.name},
                    ),
                )
            self._claim_tasks(saga, user.id, data.name, tasks)
            patch["pending_tasks"] = pending

        saga.step(
            f"write user {user.id}",
            partial(self._write, USERS, user.id, patch, "User not found"),
        )
        updated = saga.run()
        logger.info("User %s updated", user.id)
        return updated

    def delete_user(self, user_id: str) -> None:
        user = self.get_user(user_id)

        saga = self._saga("delete user")
        saga.step(
            f"unassign tasks of user {user.id}",
            partial(self.store.update_many, TASKS, eq("assigned_user", user.id), unassigned_patch()),
            partial(
                self.store.update_many,
                TASKS,
                all_of(in_("id", user.pending_tasks), eq("assigned_user", "")),
                {"assigned_user": user.id, "assigned_user_name": user.name},
            ),
        )
        saga.step(f"delete user {user.id}", partial(self._delete, USERS, user.id, "User not found"))
        saga.run()
        logger.info("User %s deleted", user.id)

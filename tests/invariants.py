from tasktracker.models import UNASSIGNED
from tasktracker.store import TASKS, USERS


def assert_assignments_consistent(store) -> None:
    """Check that tasks and users agree on every assignment."""
    users = store.find(USERS)
    tasks = store.find(TASKS)
    task_ids = {task.id for task in tasks}

    listed_by = {}
    for user in users:
        assert len(user.pending_tasks) == len(set(user.pending_tasks)), f"duplicates in {user.id}"
        for task_id in user.pending_tasks:
            assert task_id in task_ids, f"user {user.id} lists missing task {task_id}"
            assert task_id not in listed_by, f"task {task_id} listed by two users"
            listed_by[task_id] = user.id

    for task in tasks:
        if task.assigned_user:
            assert listed_by.get(task.id) == task.assigned_user
        else:
            assert task.id not in listed_by
            assert task.assigned_user_name == UNASSIGNED

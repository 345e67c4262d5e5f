from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..config import TASKS_DEFAULT_LIMIT
from ..database import get_store
from ..query import parse_projection, run_query, translate
from ..schemas.envelope import Envelope, envelope
from ..schemas.task import TaskCreate, TaskUpdate, serialize_task
from ..services.relationships import RelationshipEngine
from ..store import TASKS, EntityStore
from .deps import get_relationship_engine

router = APIRouter()


@router.get("/tasks", response_model=Envelope)
def get_tasks(
    where: Optional[str] = Query(None, description="JSON filter, e.g. {\"completed\": false}"),
    sort: Optional[str] = Query(None, description="JSON sort, e.g. {\"deadline\": 1}"),
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"name\": 1}"),
    skip: Optional[str] = Query(None, description="Number of tasks to skip"),
    limit: Optional[str] = Query(None, description="Maximum number of tasks (default 100)"),
    count: Optional[str] = Query(None, description="\"true\" to return only the number of matches"),
    store: EntityStore = Depends(get_store),
):
    """List tasks with optional filtering, sorting, projection and pagination."""
    plan = translate(
        {"where": where, "sort": sort, "select": select, "skip": skip, "limit": limit, "count": count},
        TASKS,
        default_limit=TASKS_DEFAULT_LIMIT,
    )
    data = run_query(store, plan, serialize_task)
    if plan.count:
        return envelope("Count of tasks retrieved successfully", data)
    return envelope("Tasks retrieved successfully", data)


@router.post("/tasks", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Create a new task, optionally assigned to an existing user."""
    created = relationships.create_task(task)
    return envelope("Task created successfully", serialize_task(created))


@router.get("/tasks/{task_id}", response_model=Envelope)
def get_task(
    task_id: str,
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"name\": 1}"),
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Get a specific task by ID."""
    projection = parse_projection(select, TASKS)
    data = serialize_task(relationships.get_task(task_id))
    if projection is not None:
        data = projection.apply(data)
    return envelope("Task retrieved successfully", data)


@router.put("/tasks/{task_id}", response_model=Envelope)
def update_task(
    task_id: str,
    task: TaskUpdate,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Replace a task; changing assignedUser moves it between users' pending lists."""
    updated = relationships.update_task(task_id, task)
    return envelope("Task updated successfully", serialize_task(updated))


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Delete a task and drop it from its assignee's pending list."""
    relationships.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

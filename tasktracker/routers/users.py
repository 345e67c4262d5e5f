from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..database import get_store
from ..query import parse_projection, run_query, translate
from ..schemas.envelope import Envelope, envelope
from ..schemas.user import UserCreate, UserUpdate, serialize_user
from ..services.relationships import RelationshipEngine
from ..store import USERS, EntityStore
from .deps import get_relationship_engine

router = APIRouter()


@router.get("/users", response_model=Envelope)
def get_users(
    where: Optional[str] = Query(None, description="JSON filter, e.g. {\"name\": \"Ann\"}"),
    sort: Optional[str] = Query(None, description="JSON sort, e.g. {\"name\": 1}"),
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"email\": 1}"),
    skip: Optional[str] = Query(None, description="Number of users to skip"),
    limit: Optional[str] = Query(None, description="Maximum number of users (unbounded by default)"),
    count: Optional[str] = Query(None, description="\"true\" to return only the number of matches"),
    store: EntityStore = Depends(get_store),
):
    """List users with optional filtering, sorting, projection and pagination."""
    plan = translate(
        {"where": where, "sort": sort, "select": select, "skip": skip, "limit": limit, "count": count},
        USERS,
    )
    data = run_query(store, plan, serialize_user)
    if plan.count:
        return envelope("Count of users retrieved successfully", data)
    return envelope("Users retrieved successfully", data)


@router.post("/users", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def create_user(
    user: UserCreate,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Create a user; any listed pendingTasks are assigned to the new user."""
    created = relationships.create_user(user)
    return envelope("User created successfully", serialize_user(created))


@router.get("/users/{user_id}", response_model=Envelope)
def get_user(
    user_id: str,
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"email\": 1}"),
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Get a specific user by ID."""
    projection = parse_projection(select, USERS)
    data = serialize_user(relationships.get_user(user_id))
    if projection is not None:
        data = projection.apply(data)
    return envelope("User retrieved successfully", data)


@router.put("/users/{user_id}", response_model=Envelope)
def update_user(
    user_id: str,
    user: UserUpdate,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Replace a user.

    A supplied pendingTasks list becomes the user's complete list: tasks left
    out are unassigned, tasks held by other users are taken over.
    """
    updated = relationships.update_user(user_id, user)
    return envelope("User updated successfully", serialize_user(updated))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    relationships: RelationshipEngine = Depends(get_relationship_engine),
):
    """Delete a user and unassign every task it held."""
    relationships.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

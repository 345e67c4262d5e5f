from pydantic import Field, field_validator
from datetime import datetime
from typing import Optional

from ..models.task import to_naive_utc
from .envelope import CamelModel


class TaskBase(CamelModel):
    """Fields a client may write on a task.

    ``assignedUserName`` is never accepted from clients; it is derived from
    the assigned user whenever the assignment changes.
    """
    name: str = Field(min_length=1)
    description: Optional[str] = ""
    deadline: datetime
    completed: bool = False
    assigned_user: Optional[str] = ""

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("description", "assigned_user")
    @classmethod
    def _none_as_empty(cls, value: Optional[str]) -> str:
        return value or ""


class TaskCreate(TaskBase):
    """Schema for creating new tasks."""
    pass


class TaskUpdate(TaskBase):
    """Schema for replacing a task (PUT): omitted optional fields fall back to defaults."""
    pass


class Task(CamelModel):
    """Complete task schema with all fields."""
    id: str
    name: str
    description: str
    deadline: datetime
    completed: bool
    assigned_user: str
    assigned_user_name: str
    date_created: datetime


def serialize_task(task) -> dict:
    return Task.model_validate(task).model_dump(mode="json", by_alias=True)

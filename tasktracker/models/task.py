from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

# Display value of assigned_user_name while a task has no owner.
UNASSIGNED = "unassigned"


class Task(SQLModel, table=True):
    """A unit of work, optionally assigned to one User.

    ``assigned_user`` is ``""`` when the task is unassigned; the owning User
    lists this task's id in its ``pending_tasks``. ``assigned_user_name`` is a
    snapshot of that User's name taken when the assignment was written.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    description: str = Field(default="")
    deadline: datetime
    completed: bool = Field(default=False)
    assigned_user: str = Field(default="", index=True)
    assigned_user_name: str = Field(default=UNASSIGNED)
    date_created: datetime = Field(default_factory=datetime.utcnow)


def unassigned_patch() -> dict:
    """Field values that put a task back in the unassigned state."""
    return {"assigned_user": "", "assigned_user_name": UNASSIGNED}


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Timestamps are stored and compared as naive UTC.
    if value is not None and value.tzinfo is not None:
        try:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError:
            raise ValueError("timestamp out of range") from None
    return value

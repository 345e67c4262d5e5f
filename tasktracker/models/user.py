from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import List
from uuid import uuid4


class User(SQLModel, table=True):
    """A person tasks can be assigned to.

    ``pending_tasks`` holds Task ids in assignment order. The references are
    weak: a User does not own the tasks it lists.
    """
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    pending_tasks: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    date_created: datetime = Field(default_factory=datetime.utcnow)

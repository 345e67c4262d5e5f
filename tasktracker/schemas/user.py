from pydantic import Field
from typing import List, Optional
from datetime import datetime

from .envelope import CamelModel


class UserBase(CamelModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)


class UserCreate(UserBase):
    pending_tasks: Optional[List[str]] = None


class UserUpdate(UserBase):
    # None keeps the stored list; a list replaces it completely.
    pending_tasks: Optional[List[str]] = None


class User(CamelModel):
    id: str
    name: str
    email: str
    pending_tasks: List[str]
    date_created: datetime


def serialize_user(user) -> dict:
    return User.model_validate(user).model_dump(mode="json", by_alias=True)

from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Envelope(BaseModel):
    """Uniform body of every non-empty response."""
    message: str
    data: Optional[Any] = None


def envelope(message: str, data: Any = None) -> dict:
    return {"message": message, "data": data}

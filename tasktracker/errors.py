"""Error taxonomy shared by the store, the query translator and the relationship engine.

Every error carries the HTTP status the request handlers answer with; the
handlers in ``main.py`` turn them into the ``{message, data}`` envelope.
"""
from typing import Any, Optional


class TrackerError(Exception):
    status_code = 500

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class BadRequest(TrackerError):
    """Malformed query parameter or request body."""

    status_code = 400


class InvalidReference(BadRequest):
    """A write points at a User or Task that does not exist."""


class Conflict(TrackerError):
    """A unique field (User.email) is already taken."""

    status_code = 400


class NotFound(TrackerError):
    status_code = 404


class StoreUnavailable(TrackerError):
    """The entity store failed; ``data`` holds the underlying description."""

    status_code = 500

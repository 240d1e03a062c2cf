"""Error types raised by the task core and mapped to HTTP responses in main."""

from typing import Optional


class TaskflowError(Exception):
    """Base exception for the task backend."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidInput(TaskflowError):
    """Malformed or missing required fields."""

    status_code = 400
    default_message = "Invalid input"


class NotFound(TaskflowError):
    """Referenced task or user does not exist."""

    status_code = 404
    default_message = "Not found"


class Forbidden(TaskflowError):
    """Actor lacks the role or assignment the operation requires."""

    status_code = 403
    default_message = "You are not authorized to perform this action"


class RepositoryFailure(TaskflowError):
    """The storage collaborator failed."""

    status_code = 500

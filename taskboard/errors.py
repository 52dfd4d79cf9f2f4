"""Domain errors raised by the taskboard services.

Routers let these propagate; ``taskboard.main`` maps each class to an HTTP
status code.
"""


class TaskboardError(Exception):
    """Base class for all taskboard domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """Input rejected before any write happened."""

    status_code = 422


class NotFoundError(TaskboardError):
    status_code = 404


class TimerConflictError(TaskboardError):
    """The user already has a running timer."""

    status_code = 409


class PersistenceError(TaskboardError):
    """A read or write against the database failed."""

    status_code = 503

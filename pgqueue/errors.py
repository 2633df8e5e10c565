"""
Queue error taxonomy.

Store and transport failures are not wrapped: SQLAlchemy errors propagate
to the caller unchanged. Only conditions the queue gives a meaning to are
translated into the types below.
"""


class QueueError(Exception):
    """Base error for queue operations."""


class InvalidNamespaceError(QueueError, ValueError):
    """Raised when a namespace contains non-ASCII characters."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"namespace {namespace!r} contains non-ASCII characters")


class InvalidTaskError(QueueError, ValueError):
    """Raised when a task field cannot be stored (priority range, payload encoding)."""


class DuplicateIDError(QueueError):
    """Raised when a task with the same ID already exists."""

    def __init__(self, task_id: object = None) -> None:
        self.task_id = task_id
        super().__init__("duplicate ID" if task_id is None else f"duplicate ID {task_id}")


class NoTaskError(QueueError):
    """Raised when a task cannot be found."""

    def __init__(self, message: str = "no task") -> None:
        super().__init__(message)


class NoTaskAvailableError(NoTaskError):
    """Raised when no eligible, unlocked task could be claimed."""

    def __init__(self, message: str = "no task available") -> None:
        super().__init__(message)


class SchemaVersionError(QueueError):
    """Raised when the store cannot be brought to a compatible schema version."""

"""
PostgreSQL Priority Queue

A priority task queue whose state lives in PostgreSQL. Consumers claim tasks
with row locks (FOR UPDATE SKIP LOCKED), so any number of producers and
consumers can share one database without further coordination.
"""

from pgqueue.claim import Claim
from pgqueue.client import QueueClient
from pgqueue.errors import (
    DuplicateIDError,
    InvalidNamespaceError,
    InvalidTaskError,
    NoTaskAvailableError,
    NoTaskError,
    QueueError,
    SchemaVersionError,
)
from pgqueue.options import with_limit, with_namespace, with_offset
from pgqueue.types.task import QueueStat, Task, TaskDetails

__version__ = "1.0.0"

__all__ = [
    "QueueClient",
    "Claim",
    "Task",
    "TaskDetails",
    "QueueStat",
    "with_namespace",
    "with_limit",
    "with_offset",
    "QueueError",
    "InvalidNamespaceError",
    "InvalidTaskError",
    "DuplicateIDError",
    "NoTaskError",
    "NoTaskAvailableError",
    "SchemaVersionError",
]

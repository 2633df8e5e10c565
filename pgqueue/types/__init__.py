"""
Type definitions for the task queue.
"""

from pgqueue.types.task import (
    QueueStat,
    Task,
    TaskDetails,
    as_utc,
    validate_namespace,
)

__all__ = [
    "Task",
    "TaskDetails",
    "QueueStat",
    "as_utc",
    "validate_namespace",
]

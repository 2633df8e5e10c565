"""
Task handler resolution.

Handlers must be idempotent: a task is delivered again after a nack, a
release, or a claim that timed out before it was resolved.
"""

import importlib
import logging
from collections.abc import Awaitable, Callable

from pgqueue.types.task import TaskDetails

logger = logging.getLogger(__name__)

# Type alias for task handler coroutines; raising marks the delivery failed
TaskHandler = Callable[[TaskDetails], Awaitable[None]]


def load_handler(path: str) -> TaskHandler:
    """
    Import a handler from a ``module:function`` path.

    Args:
        path: Import path, e.g. ``myapp.tasks:handle``.

    Returns:
        The handler coroutine function.

    Raises:
        ValueError: If the path is malformed or does not name a callable.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"handler path {path!r} must look like 'module:function'")

    module = importlib.import_module(module_name)
    handler = getattr(module, attr, None)
    if not callable(handler):
        raise ValueError(f"handler {path!r} is not callable")
    return handler


async def log_task(task: TaskDetails) -> None:
    """Default handler: logs the task and completes it."""
    logger.info(
        "Processing task",
        extra={
            "task_id": str(task.id),
            "namespace": task.namespace,
            "priority": task.priority,
            "attempts": task.attempts,
        },
    )

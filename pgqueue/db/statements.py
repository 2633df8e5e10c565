"""
Statement builders for queue operations.

Every function returns a parameterized SQLAlchemy Core statement against
the task table. Reads return the columns in ``TASK_COLUMNS`` order so rows
can be turned into ``TaskDetails`` uniformly.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Delete, Insert, Select, Update, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert

from pgqueue.db.models import TASK_COLUMNS, MetaInfo, TaskRecord


def _ordered(stmt: Select) -> Select:
    # Most urgent first, longest waiting first within a priority band
    return stmt.order_by(TaskRecord.priority.desc(), TaskRecord.updated_at.asc())


def push(
    task_id: UUID,
    namespace: str,
    priority: int,
    payload: Any,
    not_before: datetime,
    now: datetime,
) -> Insert:
    """Insert a task, returning its id."""
    return (
        insert(TaskRecord)
        .values(
            id=task_id,
            namespace=namespace,
            priority=priority,
            payload=payload,
            not_before=not_before,
            created_at=now,
            updated_at=now,
        )
        .returning(TaskRecord.id)
    )


def get(task_id: UUID) -> Select:
    """Point lookup, no locking."""
    return select(*TASK_COLUMNS).where(TaskRecord.id == task_id)


def shift(namespace: str, now: datetime) -> Select:
    """
    Pick and lock the most urgent visible task of a namespace.

    Rows locked by other transactions are skipped rather than waited on.
    """
    stmt = select(*TASK_COLUMNS).where(
        TaskRecord.namespace == namespace,
        TaskRecord.not_before <= now,
    )
    return _ordered(stmt).limit(1).with_for_update(skip_locked=True)


def claim(task_id: UUID) -> Select:
    """Lock a single task by id, skipping it if already locked."""
    return (
        select(*TASK_COLUMNS)
        .where(TaskRecord.id == task_id)
        .limit(1)
        .with_for_update(skip_locked=True)
    )


def list_tasks(namespace: str, limit: int, offset: int) -> Select:
    """List tasks, including delayed ones, in pick order."""
    stmt = select(*TASK_COLUMNS).where(TaskRecord.namespace == namespace)
    return _ordered(stmt).limit(limit).offset(offset)


def update_task(
    task_id: UUID,
    namespace: str,
    priority: int,
    payload: Any,
    not_before: datetime,
    now: datetime,
) -> Update:
    """Write back the editable fields of a claimed task."""
    return (
        update(TaskRecord)
        .where(TaskRecord.id == task_id)
        .values(
            namespace=namespace,
            priority=priority,
            payload=payload,
            not_before=not_before,
            updated_at=now,
        )
    )


def done(task_id: UUID) -> Delete:
    """Remove a completed task."""
    return delete(TaskRecord).where(TaskRecord.id == task_id)


def nack(task_id: UUID, now: datetime) -> Update:
    """Record an unsuccessful delivery."""
    return (
        update(TaskRecord)
        .where(TaskRecord.id == task_id)
        .values(attempts=TaskRecord.attempts + 1, updated_at=now)
    )


def count_visible(namespace: str, now: datetime) -> Select:
    return (
        select(func.count())
        .select_from(TaskRecord)
        .where(TaskRecord.namespace == namespace, TaskRecord.not_before <= now)
    )


def min_created_at(namespace: str, now: datetime) -> Select:
    return select(func.min(TaskRecord.created_at)).where(
        TaskRecord.namespace == namespace,
        TaskRecord.not_before <= now,
    )


def stats(now: datetime) -> Select:
    """Visible length and oldest created_at, grouped by namespace."""
    return (
        select(
            TaskRecord.namespace,
            func.count().label("len"),
            func.min(TaskRecord.created_at).label("min_created_at"),
        )
        .where(TaskRecord.not_before <= now)
        .group_by(TaskRecord.namespace)
        .order_by(TaskRecord.namespace)
    )


def truncate(namespace: str) -> Delete:
    return delete(TaskRecord).where(TaskRecord.namespace == namespace)


def get_meta(name: str) -> Select:
    return select(MetaInfo.value).where(MetaInfo.name == name)


def set_meta(name: str, value: str) -> Insert:
    """Upsert a metadata row."""
    stmt = insert(MetaInfo).values(name=name, value=value)
    return stmt.on_conflict_do_update(
        index_elements=[MetaInfo.name],
        set_={"value": stmt.excluded.value},
    )

"""
SQLAlchemy database models.
Defines the task table and the schema metadata table.
"""

from datetime import datetime
from typing import Any
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pgqueue.constants import META_INFO_TABLE, TASKS_PKEY, TASKS_TABLE


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TaskRecord(Base):
    """
    Task row, one per enqueued task.

    This is the authoritative source of truth for task state. There is no
    status column: a task is claimed while a transaction holds its row lock
    and is gone once acknowledged.

    Key constraints:
    - id is unique across all namespaces
    - a task is visible to selection once not_before <= now
    - updated_at is the tie-break within a priority band
    """

    __tablename__ = TASKS_TABLE

    id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        default=uuid4,
    )
    namespace: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        server_default="",
    )
    priority: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        server_default="0",
    )
    payload: Mapped[Any] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    not_before: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("'epoch'::timestamptz"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default="0",
    )

    __table_args__ = (
        PrimaryKeyConstraint("id", name=TASKS_PKEY),
        # Index for visibility aggregates
        Index("ix_pgqueue_tasks_visible", "namespace", "not_before"),
    )

    def __repr__(self) -> str:
        return (
            f"TaskRecord(id={self.id}, namespace={self.namespace!r}, "
            f"priority={self.priority}, attempts={self.attempts})"
        )


# Index for shift/list ordering
Index(
    "ix_pgqueue_tasks_pick",
    TaskRecord.namespace,
    TaskRecord.priority.desc(),
    TaskRecord.updated_at,
)


class MetaInfo(Base):
    """Key/value rows describing the store, e.g. the schema version."""

    __tablename__ = META_INFO_TABLE

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)


# Column order used by every task read
TASK_COLUMNS = (
    TaskRecord.id,
    TaskRecord.namespace,
    TaskRecord.priority,
    TaskRecord.payload,
    TaskRecord.not_before,
    TaskRecord.created_at,
    TaskRecord.updated_at,
    TaskRecord.attempts,
)

"""
Task-related type definitions.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pgqueue.constants import MAX_PRIORITY, MIN_PRIORITY, UNIX_ZERO
from pgqueue.errors import InvalidNamespaceError, InvalidTaskError


def validate_namespace(namespace: str) -> None:
    """
    Ensure a namespace only contains ASCII characters.

    Raises:
        InvalidNamespaceError: If any character is outside the ASCII range.
    """
    if not namespace.isascii():
        raise InvalidNamespaceError(namespace)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class Task:
    """
    Task definition as submitted by producers.

    The payload is an opaque JSON value; the queue never interprets it.
    A task without ``not_before`` is eligible immediately.
    """

    id: UUID | None = None
    namespace: str = ""
    priority: int = 0
    payload: Any = None
    not_before: datetime | None = None

    def validate(self) -> None:
        """
        Validate fields before they are sent to the store.

        Raises:
            InvalidNamespaceError: If the namespace is not ASCII.
            InvalidTaskError: If priority, not_before or payload cannot be stored.
        """
        validate_namespace(self.namespace)

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise InvalidTaskError(f"priority must be an integer, got {self.priority!r}")
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise InvalidTaskError(
                f"priority {self.priority} is outside [{MIN_PRIORITY}, {MAX_PRIORITY}]"
            )

        if self.not_before is not None and not isinstance(self.not_before, datetime):
            raise InvalidTaskError(
                f"not_before must be a datetime, got {type(self.not_before).__name__}"
            )

        if isinstance(self.payload, (bytes, bytearray)):
            try:
                self.payload = json.loads(self.payload) if self.payload else None
            except ValueError as e:
                raise InvalidTaskError(f"payload is not valid JSON: {e}") from e
        else:
            try:
                json.dumps(self.payload)
            except (TypeError, ValueError) as e:
                raise InvalidTaskError(f"payload is not JSON serializable: {e}") from e

    def stored_not_before(self) -> datetime:
        """Get the visibility time as persisted."""
        if self.not_before is None:
            return UNIX_ZERO
        return as_utc(self.not_before)


@dataclass
class TaskDetails(Task):
    """Task as stored, including bookkeeping columns."""

    created_at: datetime = field(default=UNIX_ZERO)
    updated_at: datetime = field(default=UNIX_ZERO)
    attempts: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TaskDetails":
        """Build task details from a result row mapping."""
        not_before = row["not_before"]
        return cls(
            id=row["id"],
            namespace=row["namespace"],
            priority=row["priority"],
            payload=row["payload"],
            not_before=None if not_before is None or not_before <= UNIX_ZERO else not_before,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            attempts=row["attempts"],
        )


@dataclass(frozen=True)
class QueueStat:
    """Visible length and oldest visible task of one namespace."""

    namespace: str
    len: int
    min_created_at: datetime

    def age_seconds(self, now: datetime) -> float:
        """Age of the oldest visible task relative to ``now``."""
        return max(0.0, (now - self.min_created_at).total_seconds())

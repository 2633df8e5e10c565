"""
Task claims.

A claim is an exclusive, transaction-scoped lease on one task. Acquiring a
claim checks out a dedicated connection, opens a transaction and locks the
task row with ``FOR UPDATE SKIP LOCKED``; the lock, and therefore the claim,
lives exactly as long as that transaction. Resolving the claim (release,
update, done or nack) ends the transaction and returns the connection.

Mutual exclusion is provided entirely by the row lock. Rows locked by
another claim are skipped, never waited on, so concurrent consumers end up
on disjoint tasks. Under contention this makes ordering best effort: a
consumer may receive the next-best task while the best one is claimed.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import ResourceClosedError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from pgqueue.db import statements
from pgqueue.errors import NoTaskAvailableError
from pgqueue.types.task import TaskDetails

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class Claim:
    """
    Exclusive claim on a task.

    Edit ``task`` in place and call ``update()`` to write the changes back,
    ``done()`` to remove the task, ``nack()`` to count a failed delivery, or
    ``release()`` to return it untouched. Exactly one of these must be
    called; any further call raises ``ResourceClosedError``.

    Claims are async context managers; leaving the block without resolving
    releases the claim:

        async with await client.shift() as claim:
            await process(claim.task.payload)
            await claim.done()
    """

    def __init__(
        self,
        conn: AsyncConnection,
        transaction: AsyncTransaction,
        task: TaskDetails,
        clock: Clock,
    ):
        self.task = task
        self._conn = conn
        self._transaction = transaction
        self._clock = clock
        self._closed = False

    @property
    def id(self) -> UUID:
        return self.task.id

    @property
    def closed(self) -> bool:
        """Whether the claim has been resolved."""
        return self._closed

    async def release(self) -> None:
        """Release the claim and return the task to the queue unchanged."""
        self._check_open()
        try:
            await self._transaction.rollback()
        finally:
            await self._close()
        logger.debug("Released claim", extra={"task_id": str(self.id)})

    async def update(self) -> None:
        """
        Write back namespace, priority, payload and not_before and return
        the task to the queue. ``updated_at`` is refreshed.

        Raises:
            InvalidNamespaceError: If the edited namespace is not ASCII.
            InvalidTaskError: If the edited priority, not_before or payload is invalid.
        """
        self._check_open()
        self.task.validate()
        if self.task.payload is None:
            self.task.payload = {}

        now = self._clock()
        await self._commit(
            statements.update_task(
                self.id,
                self.task.namespace,
                self.task.priority,
                self.task.payload,
                self.task.stored_not_before(),
                now,
            )
        )
        self.task.updated_at = now
        logger.debug(
            "Updated claimed task",
            extra={"task_id": str(self.id), "priority": self.task.priority},
        )

    async def done(self) -> None:
        """Mark the task as done and remove it from the queue."""
        self._check_open()
        await self._commit(statements.done(self.id))
        logger.debug("Completed task", extra={"task_id": str(self.id)})

    ack = done

    async def nack(self) -> None:
        """Count a failed delivery and return the task to the queue."""
        self._check_open()
        now = self._clock()
        await self._commit(statements.nack(self.id, now))
        self.task.attempts += 1
        self.task.updated_at = now
        logger.debug(
            "Negatively acknowledged task",
            extra={"task_id": str(self.id), "attempts": self.task.attempts},
        )

    async def _commit(self, stmt) -> None:
        try:
            await self._conn.execute(stmt)
            await self._transaction.commit()
        except BaseException:
            # CancelledError included: never leave a half-applied mutation
            await self._abort()
            raise
        else:
            await self._close()

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("This transaction is closed")

    async def _abort(self) -> None:
        # Runs while the mutation error is propagating; never replace it
        try:
            if self._transaction.is_active:
                await self._transaction.rollback()
        except Exception:
            logger.warning(
                "Rollback of failed claim mutation failed",
                extra={"task_id": str(self.id)},
                exc_info=True,
            )
        finally:
            try:
                await self._close()
            except Exception:
                logger.warning(
                    "Closing failed claim connection failed",
                    extra={"task_id": str(self.id)},
                    exc_info=True,
                )

    async def _close(self) -> None:
        self._closed = True
        await self._conn.close()

    async def __aenter__(self) -> "Claim":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._closed:
            await self.release()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Claim(task_id={self.id}, {state})"


async def acquire(
    engine: AsyncEngine,
    stmt: Select,
    clock: Clock,
    claim_timeout: float | None = None,
) -> Claim:
    """
    Open a transaction and lock the task selected by ``stmt``.

    Args:
        engine: Engine providing the claim's dedicated connection.
        stmt: A locking select returning task columns.
        clock: Time source for later updates.
        claim_timeout: Seconds the claim may sit idle before the server
            aborts its transaction and drops the lock. None or 0 disables.

    Returns:
        An open claim.

    Raises:
        NoTaskAvailableError: If no eligible, unlocked row exists.
    """
    conn = await engine.connect()
    try:
        transaction = await conn.begin()
        if claim_timeout:
            await conn.execute(
                select(
                    func.set_config(
                        "idle_in_transaction_session_timeout",
                        str(int(claim_timeout * 1000)),
                        True,
                    )
                )
            )
        result = await conn.execute(stmt)
        row = result.mappings().first()
    except BaseException:
        # Closing the connection rolls back; no lock survives a failed acquire
        await conn.close()
        raise

    if row is None:
        await conn.close()
        raise NoTaskAvailableError()

    return Claim(conn, transaction, TaskDetails.from_row(row), clock)

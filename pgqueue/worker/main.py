"""
Worker process for consuming tasks.

The worker shifts tasks from one namespace, hands them to a handler, and
resolves each claim: ``done`` on success, ``nack`` when the handler raises.
An empty queue is not an error; the worker backs off for the poll interval
and tries again.
"""

import asyncio
import logging
import os
import signal
import time
from typing import Protocol

from opentelemetry import trace

from pgqueue.claim import Claim
from pgqueue.client import QueueClient
from pgqueue.config import get_settings
from pgqueue.constants import SPAN_PROCESS
from pgqueue.db import close_db, get_engine
from pgqueue.errors import NoTaskAvailableError
from pgqueue.observability.logging import bind_context, setup_logging
from pgqueue.observability.metrics import MetricsCollector, get_metrics
from pgqueue.observability.tracing import instrument_sqlalchemy, setup_tracing
from pgqueue.options import ScopeOption, with_namespace
from pgqueue.worker.handlers import TaskHandler, load_handler, log_task

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TaskSource(Protocol):
    """The part of the queue client a worker consumes from."""

    async def shift(self, *opts: ScopeOption) -> Claim: ...


class Worker:
    """
    Task worker that polls for and processes tasks.

    Features:
    - Claims via FOR UPDATE SKIP LOCKED, so workers never block each other
    - Configurable number of concurrent consumer loops
    - Per-task timeout, failed or timed out tasks are nacked
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        queue: TaskSource,
        handler: TaskHandler,
        *,
        namespace: str = "",
        concurrency: int = 1,
        poll_interval: float = 1.0,
        task_timeout: float | None = None,
        worker_id: str | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: Queue to shift tasks from.
            handler: Coroutine processing one task; raising fails the task.
            namespace: Namespace to consume.
            concurrency: Number of consumer loops, i.e. claims held at once.
            poll_interval: Seconds to wait when the queue is empty.
            task_timeout: Seconds a handler may run before the task is nacked.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            metrics: Metrics collector, the process-wide one by default.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.queue = queue
        self.handler = handler
        self.namespace = namespace
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.task_timeout = task_timeout
        self.worker_id = worker_id or f"{os.uname().nodename}-{os.getpid()}"

        self._running = False
        self._metrics = metrics or get_metrics()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the consumer loops until ``stop`` is called."""
        logger.info(
            "Worker starting",
            extra={
                "worker_id": self.worker_id,
                "namespace": self.namespace,
                "concurrency": self.concurrency,
            },
        )
        self._running = True

        await asyncio.gather(*(self._consume() for _ in range(self.concurrency)))

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the worker; tasks in progress are finished first."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def _consume(self) -> None:
        while self._running:
            try:
                processed = await self.poll_once()
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id},
                )
                processed = False

            if not processed and self._running:
                await asyncio.sleep(self.poll_interval)

    async def poll_once(self) -> bool:
        """
        Claim and process at most one task.

        Returns:
            True if a task was processed, False if the queue was empty.
        """
        try:
            claim = await self.queue.shift(with_namespace(self.namespace))
        except NoTaskAvailableError:
            return False

        self._metrics.record_task_claimed(self.namespace)
        await self._process(claim)
        return True

    async def _process(self, claim: Claim) -> None:
        """
        Run the handler for a claimed task and resolve the claim.

        The claim is released if neither done nor nack could be reached,
        e.g. on cancellation.
        """
        start_time = time.monotonic()
        task_id = str(claim.id)

        async with claim:
            try:
                with tracer.start_as_current_span(SPAN_PROCESS) as span:
                    span.set_attribute("pgqueue.task_id", task_id)
                    span.set_attribute("pgqueue.namespace", self.namespace)
                    span.set_attribute("pgqueue.attempts", claim.task.attempts)

                    async with asyncio.timeout(self.task_timeout):
                        await self.handler(claim.task)
            except Exception as e:
                await claim.nack()
                status = "nacked"
                logger.warning(
                    "Task failed",
                    extra={
                        "task_id": task_id,
                        "error": repr(e),
                        "attempts": claim.task.attempts,
                    },
                )
            else:
                await claim.done()
                status = "done"
                logger.info("Task completed", extra={"task_id": task_id})

        self._metrics.record_task_completed(
            namespace=self.namespace,
            status=status,
            duration_seconds=time.monotonic() - start_time,
        )


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_tracing()
    settings = get_settings()

    handler = load_handler(settings.worker_handler) if settings.worker_handler else log_task

    engine = get_engine()
    instrument_sqlalchemy(engine)
    queue = await QueueClient.wrap(
        engine,
        with_namespace(settings.queue_namespace),
        claim_timeout=settings.claim_timeout_seconds,
        list_limit=settings.queue_list_limit,
    )

    worker = Worker(
        queue,
        handler,
        namespace=settings.worker_namespace,
        concurrency=settings.worker_concurrency,
        poll_interval=settings.worker_poll_interval_seconds,
        task_timeout=settings.worker_task_timeout_seconds,
        worker_id=settings.worker_id,
    )
    bind_context(worker_id=worker.worker_id)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

"""
FastAPI application serving queue health and metrics.
"""

import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from pgqueue import __version__
from pgqueue.api.routes import health_router
from pgqueue.client import QueueClient
from pgqueue.config import get_settings
from pgqueue.db import close_db, get_engine
from pgqueue.observability.logging import setup_logging
from pgqueue.observability.metrics import MetricsCollector, setup_metrics, unique_namespaces
from pgqueue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from pgqueue.options import with_namespace

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Connects the queue client unless one was supplied to ``create_app``.
    """
    owns_queue = getattr(app.state, "queue", None) is None
    if owns_queue:
        setup_logging()
        setup_tracing()
        settings = get_settings()
        engine = get_engine()
        instrument_sqlalchemy(engine)
        app.state.queue = await QueueClient.wrap(
            engine,
            with_namespace(settings.queue_namespace),
            claim_timeout=settings.claim_timeout_seconds,
            list_limit=settings.queue_list_limit,
        )
    if getattr(app.state, "metrics", None) is None:
        app.state.metrics = setup_metrics()

    logger.info("Metrics server started", extra={"namespaces": app.state.namespaces})

    yield

    if owns_queue:
        await app.state.queue.close()
        await close_db()
    logger.info("Metrics server shutdown")


def create_app(
    queue: QueueClient | None = None,
    namespaces: Iterable[str] | None = None,
    metrics: MetricsCollector | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        queue: Optional ready-to-use client; connected on startup otherwise.
        namespaces: Namespaces to report; defaults to the configured ones,
            or the default namespace if none are configured.
        metrics: Optional collector; the process-wide one otherwise.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="pgqueue metrics",
        description="Queue length and oldest task age per namespace",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.queue = queue
    app.state.metrics = metrics
    app.state.namespaces = unique_namespaces(
        settings.metrics_namespaces if namespaces is None else namespaces
    )

    app.include_router(health_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the metrics server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

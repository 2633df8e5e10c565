"""
Health check and metrics routes.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy import text

from pgqueue import __version__
from pgqueue.client import QueueClient
from pgqueue.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def get_queue(request: Request) -> QueueClient:
    """Dependency returning the queue client attached to the app."""
    return request.app.state.queue


def get_collector(request: Request) -> MetricsCollector:
    """Dependency returning the app's metrics collector."""
    return getattr(request.app.state, "metrics", None) or get_metrics()


async def _database_ok(queue: QueueClient) -> bool:
    try:
        async with queue.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


@router.get(
    "/health",
    summary="Health check",
    description="Check the health of the service and database connection.",
)
async def health_check(queue: QueueClient = Depends(get_queue)) -> dict:
    """
    Perform a health check.

    Args:
        queue: Queue client.

    Returns:
        Service status.
    """
    db_status = "healthy" if await _database_ok(queue) else "unhealthy"
    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "version": __version__,
        "database": db_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(queue: QueueClient = Depends(get_queue)) -> dict:
    """Kubernetes readiness probe endpoint."""
    return {"ready": await _database_ok(queue)}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness probe endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Queue metrics",
    description="Expose queue length and oldest task age per namespace in OpenMetrics format.",
)
async def metrics(
    request: Request,
    queue: QueueClient = Depends(get_queue),
    collector: MetricsCollector = Depends(get_collector),
) -> Response:
    """
    Refresh the queue gauges and render all metrics.

    Returns:
        OpenMetrics text exposition.
    """
    await collector.refresh_queue_stats(queue, request.app.state.namespaces)
    return Response(
        content=collector.get_metrics(),
        media_type=collector.get_content_type(),
    )

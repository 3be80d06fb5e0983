"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response

from batcher import __version__
from batcher.api.deps import QueueDep
from batcher.observability.metrics import get_metrics
from batcher.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and report whether the queue is busy.",
)
async def health_check(queue: QueueDep) -> HealthResponse:
    """
    Perform a health check.

    Args:
        queue: The application queue.

    Returns:
        HealthResponse with service status.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        queue="running" if queue.is_running() else "idle",
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )

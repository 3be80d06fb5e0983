"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from batcher import __version__
from batcher.api.routes import health_router, jobs_router
from batcher.api.websocket import WebSocketManager, websocket_handler
from batcher.config import get_settings
from batcher.engine.queue import Queue
from batcher.observability.logging import setup_logging
from batcher.observability.metrics import setup_metrics
from batcher.observability.tracing import instrument_fastapi, setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()

    logger.info(
        "Application started",
        extra={"persistence": app.state.queue.persistence_enabled}
    )

    yield

    queue: Queue = app.state.queue
    if queue.is_running() or queue.is_pending():
        logger.warning(
            "Shutting down with unfinished jobs",
            extra={
                "current_job": queue.current_job.name if queue.current_job else None,
                "backlog_size": queue.backlog_size,
            }
        )
    logger.info("Application shutdown")


def create_app(queue: Queue | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        queue: Queue to serve. Defaults to one built from settings.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Batcher API",
        description="Batch execution scheduler with bounded concurrency and retries",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.queue = queue or Queue.from_settings(settings)
    app.state.ws_manager = WebSocketManager()
    app.state.ws_manager.attach(app.state.queue)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(jobs_router)

    @app.websocket("/ws/jobs")
    async def jobs_websocket(websocket: WebSocket):
        """
        WebSocket endpoint streaming queue signals.

        Every signal is sent until the client subscribes to specific jobs.
        """
        await websocket_handler(websocket, app.state.ws_manager)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
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

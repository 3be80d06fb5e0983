"""
API routes module.
"""

from batcher.api.routes.health import router as health_router
from batcher.api.routes.jobs import router as jobs_router

__all__ = ["jobs_router", "health_router"]

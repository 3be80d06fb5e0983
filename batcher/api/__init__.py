"""
API module.
Contains the FastAPI application, routes, and WebSocket signal stream.
"""

from batcher.api.main import create_app, run

__all__ = ["create_app", "run"]

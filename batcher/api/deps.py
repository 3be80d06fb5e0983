"""
Request dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from batcher.engine.queue import Queue


def get_queue(request: Request) -> Queue:
    """The process-scoped queue attached to the application."""
    return request.app.state.queue


QueueDep = Annotated[Queue, Depends(get_queue)]

"""
Type definitions for the scheduler.
Contains input/output type definitions for all functions, grouped by module.
"""

from batcher.types.api import (
    CreateJobRequest,
    CreateJobResponse,
    HealthResponse,
    JobOptionsRequest,
    QueueStatusResponse,
)
from batcher.types.events import (
    Signal,
    WebSocketMessage,
)
from batcher.types.job import (
    DataToId,
    JobExport,
    JobOptions,
    OperationExport,
    Transform,
    default_data_to_id,
)

__all__ = [
    # API types
    "CreateJobRequest",
    "CreateJobResponse",
    "JobOptionsRequest",
    "QueueStatusResponse",
    "HealthResponse",
    # Job types
    "Transform",
    "DataToId",
    "JobOptions",
    "JobExport",
    "OperationExport",
    "default_data_to_id",
    # Signal types
    "Signal",
    "WebSocketMessage",
]

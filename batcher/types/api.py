"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from batcher.constants import Status


class JobOptionsRequest(BaseModel):
    """Execution options for a submitted job. Unset fields use settings defaults."""

    concurrency_limit: int | None = Field(default=None, ge=1)
    max_failures_per_operation: int | None = Field(default=None, ge=1)
    cooldown_ms: int | None = Field(default=None, ge=0)
    throttle_ms: int | None = Field(default=None, ge=0)
    id_key: str | None = Field(
        default=None,
        description="Key of each data element holding its operation id",
    )


class CreateJobRequest(BaseModel):
    """Request body for submitting a new job."""

    name: str = Field(..., min_length=1, description="Unique job name")
    transform: str = Field(..., description="Name of a registered transform")
    data: list[Any] = Field(..., description="One operation per element")
    options: JobOptionsRequest = Field(default_factory=JobOptionsRequest)


class CreateJobResponse(BaseModel):
    """Response body after submitting a job."""

    name: str
    status: Status
    operations_count: int
    message: str = "Job queued"


class QueueStatusResponse(BaseModel):
    """Summary of the queue's current state."""

    current_job: str | None
    backlog_size: int
    completed_count: int
    running: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    queue: str
    timestamp: datetime

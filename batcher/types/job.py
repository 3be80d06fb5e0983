"""
Job-related type definitions for internal use.
"""

from collections.abc import Awaitable, Callable, Hashable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from batcher.constants import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_COOLDOWN_MS,
    DEFAULT_MAX_FAILURES_PER_OPERATION,
    DEFAULT_THROTTLE_MS,
    Status,
)

# Maps one input element to the awaitable that processes it.
Transform = Callable[[Any], Awaitable[Any]]

# Maps one input element and its index to an operation id.
DataToId = Callable[[Any, int], Hashable]


def default_data_to_id(data: Any, index: int) -> Hashable:
    """
    Derive an operation id from its input element.

    Uses the ``"id"`` key of mappings, then an ``id`` attribute,
    and falls back to the element's position in the input.
    """
    if isinstance(data, Mapping) and "id" in data:
        return data["id"]
    identifier = getattr(data, "id", None)
    if identifier is not None:
        return identifier
    return index


class JobOptions(BaseModel):
    """
    Execution policy for a job.

    Validated once when the job is constructed and immutable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    data_to_id: DataToId = default_data_to_id
    concurrency_limit: int = Field(default=DEFAULT_CONCURRENCY_LIMIT, ge=1)
    # Inclusive: an operation runs at most this many times in total.
    max_failures_per_operation: int = Field(
        default=DEFAULT_MAX_FAILURES_PER_OPERATION, ge=1
    )
    cooldown_ms: int = Field(default=DEFAULT_COOLDOWN_MS, ge=0)
    throttle_ms: int = Field(default=DEFAULT_THROTTLE_MS, ge=0)


class _ExportModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class OperationExport(_ExportModel):
    """Snapshot of a single operation."""

    id: Any
    data: Any
    status: Status
    result: Any = None


class JobExport(_ExportModel):
    """
    Snapshot of a job and all of its operations.

    Timing values are in milliseconds. Serialized by alias, this is the
    document written for completed jobs.
    """

    name: str
    start_time: datetime | None = None
    effective_time_per_operation: float = 0.0
    estimated_time_remaining: float = 0.0
    operations_completed_count: int = 0
    operations: list[OperationExport] = Field(default_factory=list)

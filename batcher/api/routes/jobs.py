"""
Job management routes.
"""

import logging
from collections.abc import Hashable
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from batcher.api.deps import QueueDep
from batcher.config import get_settings
from batcher.constants import API_V1_PREFIX
from batcher.engine.job import Job
from batcher.exceptions import ConfigurationError, JobNotFoundError, UnknownTransformError
from batcher.types.api import (
    CreateJobRequest,
    CreateJobResponse,
    JobOptionsRequest,
    QueueStatusResponse,
)
from batcher.types.job import DataToId, JobExport, JobOptions, default_data_to_id
from batcher.worker.transforms import get_transform

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Jobs"])


def _id_from_key(key: str) -> DataToId:
    """Read operation ids from a key of each element, falling back to the index."""
    def data_to_id(data: Any, index: int) -> Hashable:
        if isinstance(data, dict) and key in data:
            return data[key]
        return index
    return data_to_id


def _build_options(request: JobOptionsRequest) -> JobOptions:
    """Fill unset request options from settings."""
    settings = get_settings()
    return JobOptions(
        data_to_id=_id_from_key(request.id_key) if request.id_key else default_data_to_id,
        concurrency_limit=request.concurrency_limit or settings.default_concurrency_limit,
        max_failures_per_operation=(
            request.max_failures_per_operation or settings.default_max_failures_per_operation
        ),
        cooldown_ms=(
            request.cooldown_ms if request.cooldown_ms is not None else settings.default_cooldown_ms
        ),
        throttle_ms=(
            request.throttle_ms if request.throttle_ms is not None else settings.default_throttle_ms
        ),
    )


@router.post(
    "/jobs",
    response_model=CreateJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a job",
    description="Queue a job running a registered transform over the given data.",
)
async def create_job(request: CreateJobRequest, queue: QueueDep) -> CreateJobResponse:
    """
    Submit a job to the queue.

    Args:
        request: Job submission request.
        queue: The application queue.

    Returns:
        CreateJobResponse with the job's initial status.

    Raises:
        HTTPException: If the transform is unknown or the name is taken.
    """
    try:
        transform = get_transform(request.transform)
    except UnknownTransformError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e

    if await queue.has_job(request.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A job named {request.name!r} already exists",
        )

    job = Job(
        name=request.name,
        transform=transform,
        data=request.data,
        options=_build_options(request.options),
    )
    queue.submit(job)

    logger.info(
        "Job submitted over API",
        extra={"job_name": job.name, "transform": request.transform}
    )

    return CreateJobResponse(
        name=job.name,
        status=job.status,
        operations_count=len(job.operations),
    )


@router.get(
    "/jobs",
    response_model=list[JobExport],
    summary="List jobs",
    description="Exports of every job in memory, optionally including persisted jobs.",
)
async def list_jobs(
    queue: QueueDep,
    include_persisted: bool = Query(default=False),
) -> list[JobExport]:
    """
    List job exports.

    Args:
        queue: The application queue.
        include_persisted: Also read the export directory.

    Returns:
        Job exports, in-memory jobs first.
    """
    try:
        return await queue.get_all_jobs(include_persisted=include_persisted)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e


@router.get(
    "/jobs/{name}",
    response_model=JobExport,
    summary="Get job export",
    description="Live export of a job, or its persisted copy.",
)
async def get_job(
    name: str,
    queue: QueueDep,
    include_persisted: bool = Query(default=False),
) -> JobExport:
    """
    Get one job's export.

    Args:
        name: The job name.
        queue: The application queue.
        include_persisted: Also search the export directory.

    Returns:
        The job export.

    Raises:
        HTTPException: If persistence is not configured or the job is not found.
    """
    try:
        return await queue.get_job_export(name, include_persisted=include_persisted)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except JobNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e


@router.get(
    "/queue",
    response_model=QueueStatusResponse,
    summary="Queue status",
    description="The running job and backlog size.",
)
async def get_queue_status(queue: QueueDep) -> QueueStatusResponse:
    """Summarize the queue."""
    return QueueStatusResponse(
        current_job=queue.current_job.name if queue.current_job else None,
        backlog_size=queue.backlog_size,
        completed_count=len(queue.completed_jobs),
        running=queue.is_running(),
    )

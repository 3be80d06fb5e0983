"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class Status(StrEnum):
    """
    Lifecycle states shared by operations and jobs.

    Operation transitions:
    - PENDING -> STARTED (dispatched)
    - STARTED -> COMPLETED (transform succeeded)
    - STARTED -> FAILED (transform raised)
    - FAILED -> STARTED (retried by its job)

    Job transitions:
    - PENDING -> STARTED -> COMPLETED

    A completed job may contain failed operations; jobs never fail.
    """

    PENDING = "pending"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class SignalType(StrEnum):
    """Signals published by operations, jobs and queues."""

    JOB_STARTED = "job.started"
    JOB_COMPLETED = "job.completed"
    OPERATION_STARTED = "operation.started"
    OPERATION_COMPLETED = "operation.completed"
    OPERATION_FAILED = "operation.failed"


OPERATION_SIGNALS = frozenset(
    {
        SignalType.OPERATION_STARTED,
        SignalType.OPERATION_COMPLETED,
        SignalType.OPERATION_FAILED,
    }
)

# Default job options
DEFAULT_CONCURRENCY_LIMIT = 1
DEFAULT_MAX_FAILURES_PER_OPERATION = 1
DEFAULT_COOLDOWN_MS = 0
DEFAULT_THROTTLE_MS = 500

# Persistence
EXPORT_FILE_SUFFIX = ".json"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "batcher_queue_depth"
METRIC_JOBS_SUBMITTED = "batcher_jobs_submitted_total"
METRIC_JOBS_COMPLETED = "batcher_jobs_completed_total"
METRIC_JOB_DURATION = "batcher_job_duration_seconds"
METRIC_OPERATIONS_STARTED = "batcher_operations_started_total"
METRIC_OPERATIONS_FINISHED = "batcher_operations_finished_total"
METRIC_OPERATION_RETRIES = "batcher_operation_retries_total"
METRIC_OPERATIONS_IN_FLIGHT = "batcher_operations_in_flight"

# Trace span names
SPAN_RUN_JOB = "run_job"
SPAN_EXECUTE_OPERATION = "execute_operation"

# WebSocket message types
WS_MESSAGE_SUBSCRIBED = "subscribed"
WS_MESSAGE_UNSUBSCRIBED = "unsubscribed"
WS_MESSAGE_PONG = "pong"
WS_MESSAGE_ERROR = "error"

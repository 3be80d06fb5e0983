"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from batcher.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_SUBMITTED,
    METRIC_OPERATION_RETRIES,
    METRIC_OPERATIONS_FINISHED,
    METRIC_OPERATIONS_IN_FLIGHT,
    METRIC_OPERATIONS_STARTED,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queues, jobs and operations.

    Collects metrics for:
    - Queue depth and job submissions/completions
    - Job wall-clock duration
    - Operation attempts, outcomes and retries
    - Operations currently in flight
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs waiting in the queue backlog",
            registry=self._registry,
        )

        self.jobs_submitted = Counter(
            METRIC_JOBS_SUBMITTED,
            "Total number of jobs submitted to a queue",
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs completed",
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job duration from start to completion in seconds",
            buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0, 3600.0),
            registry=self._registry,
        )

        # Attempts, so retries count again
        self.operations_started = Counter(
            METRIC_OPERATIONS_STARTED,
            "Total number of operation attempts started",
            registry=self._registry,
        )

        # Terminal outcomes only
        self.operations_finished = Counter(
            METRIC_OPERATIONS_FINISHED,
            "Total number of operations finalized",
            ["status"],
            registry=self._registry,
        )

        self.operation_retries = Counter(
            METRIC_OPERATION_RETRIES,
            "Total number of failed attempts sent back to the backlog",
            registry=self._registry,
        )

        self.operations_in_flight = Gauge(
            METRIC_OPERATIONS_IN_FLIGHT,
            "Number of operations currently executing",
            registry=self._registry,
        )

    def record_job_submitted(self) -> None:
        """Record a job submission."""
        self.jobs_submitted.inc()

    def record_job_completed(self, duration_seconds: float) -> None:
        """Record a job completion."""
        self.jobs_completed.inc()
        self.job_duration.observe(duration_seconds)

    def record_operation_started(self) -> None:
        """Record an operation attempt."""
        self.operations_started.inc()

    def record_operation_finished(self, status: str) -> None:
        """Record an operation reaching a terminal status."""
        self.operations_finished.labels(status=status).inc()

    def record_operation_retry(self) -> None:
        """Record a failed attempt that will be retried."""
        self.operation_retries.inc()

    def update_in_flight(self, count: int) -> None:
        """Update the number of in-flight operations of the running job."""
        self.operations_in_flight.set(count)

    def update_queue_depth(self, depth: int) -> None:
        """Update the queue backlog size."""
        self.queue_depth.set(depth)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics

"""
A batch of operations sharing one transform and one execution policy.

The job owns three collections and every operation is in exactly one of
them at any time:

- ``backlog``: waiting for a first attempt or re-queued after a failure
- ``in_flight``: transform running (or waiting out its throttle delay)
- ``completed_operations``: succeeded, or failed with no retries left

All mutation happens inside signal handlers on the event loop thread, so
no locking is needed. State is always updated before the dispatcher runs.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Coroutine, Hashable, Iterable
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace

from batcher.constants import OPERATION_SIGNALS, SignalType, Status
from batcher.engine.clock import AsyncioClock, Clock
from batcher.engine.operation import Operation
from batcher.engine.signals import SignalBus, Subscription
from batcher.observability.logging import job_log_context
from batcher.observability.metrics import get_metrics
from batcher.observability.tracing import start_job_span
from batcher.types.events import Signal
from batcher.types.job import JobExport, JobOptions, Transform

logger = logging.getLogger(__name__)


class Job:
    """
    Runs operations with a concurrency cap, a one-time cooldown and
    throttled retries.

    Features:
    - At most ``concurrency_limit`` operations in flight
    - ``cooldown_ms`` delay before the first dispatch only
    - Failed operations go back to the tail of the backlog until they
      have run ``max_failures_per_operation`` times
    - Each retry waits ``failure_count * throttle_ms`` before starting
    - Operation signals are re-published on the job's bus with its name

    A job has no failure state: it always completes, possibly with
    failed operations.
    """

    def __init__(
        self,
        name: str,
        transform: Transform,
        data: Iterable[Any],
        options: JobOptions | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the job, creating one operation per data element.

        Args:
            name: Unique name within a queue.
            transform: Async function applied to each element.
            data: Input elements, in dispatch order.
            options: Execution policy. Defaults to ``JobOptions()``.
            clock: Time source for cooldown and throttle delays.
        """
        self.name = name
        self.transform = transform
        self.options = options or JobOptions()
        self.clock = clock or AsyncioClock()

        self.status = Status.PENDING
        self.signals = SignalBus()

        # Ids are expected to be unique; a duplicate replaces the earlier
        # entry in the index only. Scheduling tracks operation instances.
        self.operation_index: dict[Hashable, Operation] = {}
        self.backlog: deque[Operation] = deque()
        self.in_flight: set[Operation] = set()
        self._operations: list[Operation] = []
        self.completed_operations: list[Operation] = []

        for index, element in enumerate(data):
            operation_id = self.options.data_to_id(element, index)
            operation = Operation(operation_id, transform, element)
            self.operation_index[operation_id] = operation
            self._operations.append(operation)
            self.backlog.append(operation)

        self.start_time: datetime | None = None
        self.effective_time_per_operation = 0.0
        self.estimated_time_remaining = 0.0

        self._started_at: float | None = None
        self._completed = asyncio.Event()
        self._tasks: set[asyncio.Task[None]] = set()
        self._span: trace.Span | None = None
        self._metrics = get_metrics()

    def __repr__(self) -> str:
        return (
            f"Job(name={self.name!r}, status={self.status.value}, "
            f"backlog={len(self.backlog)}, in_flight={self.in_flight_count}, "
            f"completed={len(self.completed_operations)})"
        )

    @property
    def operations(self) -> list[Operation]:
        """Every operation of the job, in input order."""
        return list(self._operations)

    @property
    def in_flight_count(self) -> int:
        return len(self.in_flight)

    def is_full(self) -> bool:
        """Whether the maximum number of concurrent operations is running."""
        return self.in_flight_count >= self.options.concurrency_limit

    def has_pending(self) -> bool:
        """Whether any operation is waiting in the backlog."""
        return len(self.backlog) > 0

    def is_complete(self) -> bool:
        """Whether nothing is waiting and nothing is running."""
        return self.in_flight_count == 0 and not self.has_pending()

    def start(self) -> None:
        """
        Start dispatching operations.

        Must be called from a running event loop. Calling it again, or
        after completion, does nothing.
        """
        if self.status is not Status.PENDING:
            return

        self.status = Status.STARTED
        self.start_time = datetime.now(timezone.utc)
        self._started_at = self.clock.now()
        self._span = start_job_span(self.name, len(self._operations))

        logger.info(
            "Job started",
            extra={
                "job_name": self.name,
                "operations": len(self._operations),
                "concurrency_limit": self.options.concurrency_limit,
                "cooldown_ms": self.options.cooldown_ms,
            },
        )
        self.signals.publish(Signal.job_started(self.name))

        if self.options.cooldown_ms > 0:
            self._spawn(self._cool_down())
        else:
            self._dispatch()

    async def wait(self) -> str:
        """Wait until the job completes and return its name."""
        await self._completed.wait()
        return self.name

    def export(self) -> JobExport:
        """Snapshot of the job's progress and every operation."""
        return JobExport(
            name=self.name,
            start_time=self.start_time,
            effective_time_per_operation=self.effective_time_per_operation,
            estimated_time_remaining=self.estimated_time_remaining,
            operations_completed_count=len(self.completed_operations),
            operations=[operation.export() for operation in self._operations],
        )

    async def _cool_down(self) -> None:
        await self.clock.sleep(self.options.cooldown_ms / 1000)
        self._dispatch()

    def _dispatch(self) -> None:
        """Admit operations until the cap is reached or the backlog is empty."""
        while not self.is_full():
            if self.is_complete():
                self._complete()
                return

            if not self.has_pending():
                return

            operation = self.backlog.popleft()
            self.in_flight.add(operation)
            self._metrics.update_in_flight(self.in_flight_count)
            self._attach(operation)

            # Zero on the first attempt, growing with each failure.
            delay = operation.failure_count * self.options.throttle_ms / 1000
            self._spawn(self._run(operation, delay))

    async def _run(self, operation: Operation, delay: float) -> None:
        if delay > 0:
            await self.clock.sleep(delay)
        await operation.start()

    def _attach(self, operation: Operation) -> None:
        """Forward one attempt's signals and react to its outcome."""
        subscription: Subscription

        def on_signal(signal: Signal) -> None:
            self.signals.publish(signal.for_job(self.name))

            if signal.type is SignalType.OPERATION_STARTED:
                self._metrics.record_operation_started()
                return

            operation.signals.unsubscribe(subscription)
            if signal.type is SignalType.OPERATION_COMPLETED:
                self._settle(operation, retry=False)
            else:
                self._handle_failure(operation)

        subscription = operation.signals.subscribe(on_signal, OPERATION_SIGNALS)

    def _handle_failure(self, operation: Operation) -> None:
        if operation.failure_count < self.options.max_failures_per_operation:
            logger.warning(
                "Operation failed, will retry",
                extra={
                    "job_name": self.name,
                    "operation_id": operation.id,
                    "failure_count": operation.failure_count,
                    "max_failures": self.options.max_failures_per_operation,
                    "error": operation.result,
                },
            )
            self._metrics.record_operation_retry()
            self._settle(operation, retry=True)
        else:
            logger.error(
                "Operation failed, retries exhausted",
                extra={
                    "job_name": self.name,
                    "operation_id": operation.id,
                    "failure_count": operation.failure_count,
                    "error": operation.result,
                },
            )
            self._settle(operation, retry=False)

    def _settle(self, operation: Operation, retry: bool) -> None:
        """Move a finished attempt out of flight, then dispatch again."""
        self.in_flight.remove(operation)
        self._metrics.update_in_flight(self.in_flight_count)

        if retry:
            self.backlog.append(operation)
        else:
            self.completed_operations.append(operation)
            self._metrics.record_operation_finished(operation.status.value)
            self.effective_time_per_operation = (
                self._elapsed_ms() / len(self.completed_operations)
            )

        self.estimated_time_remaining = self.effective_time_per_operation * (
            len(self.backlog) + self.in_flight_count
        )
        self._dispatch()

    def _complete(self) -> None:
        if self.status is Status.COMPLETED:
            return
        self.status = Status.COMPLETED

        elapsed_ms = self._elapsed_ms()
        failed = sum(
            1 for operation in self.completed_operations if operation.status is Status.FAILED
        )
        self._metrics.record_job_completed(elapsed_ms / 1000)
        if self._span is not None:
            self._span.set_attribute("failed_operations", failed)
            self._span.end()

        logger.info(
            "Job completed",
            extra={
                "job_name": self.name,
                "operations": len(self.completed_operations),
                "failed": failed,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        self._completed.set()
        self.signals.publish(Signal.job_completed(self.name))

    def _elapsed_ms(self) -> float:
        if self._started_at is None:
            return 0.0
        return (self.clock.now() - self._started_at) * 1000

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        """Schedule a coroutine carrying the job's log and trace context."""
        span = self._span or trace.INVALID_SPAN
        with job_log_context(self.name), trace.use_span(span, end_on_exit=False):
            task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

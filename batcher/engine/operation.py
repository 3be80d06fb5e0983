"""
A single unit of work inside a job.
"""

import logging
from collections.abc import Hashable
from typing import Any

from batcher.constants import Status
from batcher.engine.signals import SignalBus
from batcher.observability.tracing import operation_span
from batcher.types.events import Signal
from batcher.types.job import OperationExport, Transform

logger = logging.getLogger(__name__)


def describe_failure(error: BaseException) -> str:
    """Render an exception as the failure reason stored in ``result``."""
    return f"{type(error).__name__}: {error}"


class Operation:
    """
    One input element and the transform that processes it.

    An operation never retries itself. Its job decides whether a failed
    operation runs again and calls :meth:`start` on the same instance,
    so ``failure_count`` accumulates across attempts.
    """

    def __init__(self, id: Hashable, transform: Transform, data: Any):
        """
        Args:
            id: Identifier, unique within the owning job.
            transform: Async function applied to ``data``.
            data: The input element.
        """
        self.id = id
        self.data = data
        self.status = Status.PENDING
        self.result: Any = None
        self.exception: BaseException | None = None
        self.failure_count = 0
        self.signals = SignalBus()

        self._transform = transform

    def __repr__(self) -> str:
        return f"Operation(id={self.id!r}, status={self.status.value}, failures={self.failure_count})"

    @property
    def is_settled(self) -> bool:
        return self.status in (Status.COMPLETED, Status.FAILED)

    async def start(self) -> None:
        """
        Run the transform once.

        Does nothing while an attempt is running or after success.
        """
        if self.status in (Status.STARTED, Status.COMPLETED):
            return

        self.status = Status.STARTED
        self.result = None
        self.signals.publish(Signal.operation_started(self.id))

        error: Exception | None = None
        with operation_span(self.id, attempt=self.failure_count + 1) as span:
            try:
                result = await self._transform(self.data)
            except Exception as e:
                error = e
                span.record_exception(e)

        if error is not None:
            self.failure_count += 1
            self.status = Status.FAILED
            self.exception = error
            self.result = describe_failure(error)
            logger.debug(
                "Operation attempt failed",
                extra={
                    "operation_id": self.id,
                    "failure_count": self.failure_count,
                    "error": self.result,
                },
            )
            self.signals.publish(Signal.operation_failed(self.id))
            return

        self.status = Status.COMPLETED
        self.result = result
        self.signals.publish(Signal.operation_completed(self.id))

    def export(self) -> OperationExport:
        """Snapshot of this operation. Safe to call at any point."""
        return OperationExport(
            id=self.id,
            data=self.data,
            status=self.status,
            result=self.result,
        )

"""
Signal type definitions for subscribers and WebSocket messaging.
"""

from collections.abc import Hashable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from batcher.constants import SignalType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Signal(BaseModel):
    """
    A state change published by an operation, job or queue.

    Operation signals carry the operation id; once forwarded by a job
    they also carry the job name. Job signals carry only the job name.
    """

    model_config = ConfigDict(frozen=True)

    type: SignalType
    job_name: str | None = None
    operation_id: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def is_operation_signal(self) -> bool:
        return self.operation_id is not None

    def for_job(self, job_name: str) -> "Signal":
        """Copy of this signal tagged with the owning job."""
        return self.model_copy(update={"job_name": job_name})

    @classmethod
    def job_started(cls, job_name: str) -> "Signal":
        """Create a job started signal."""
        return cls(type=SignalType.JOB_STARTED, job_name=job_name)

    @classmethod
    def job_completed(cls, job_name: str) -> "Signal":
        """Create a job completed signal."""
        return cls(type=SignalType.JOB_COMPLETED, job_name=job_name)

    @classmethod
    def operation_started(cls, operation_id: Hashable) -> "Signal":
        """Create an operation started signal."""
        return cls(type=SignalType.OPERATION_STARTED, operation_id=operation_id)

    @classmethod
    def operation_completed(cls, operation_id: Hashable) -> "Signal":
        """Create an operation completed signal."""
        return cls(type=SignalType.OPERATION_COMPLETED, operation_id=operation_id)

    @classmethod
    def operation_failed(cls, operation_id: Hashable) -> "Signal":
        """Create an operation failed signal."""
        return cls(type=SignalType.OPERATION_FAILED, operation_id=operation_id)


class WebSocketMessage(BaseModel):
    """
    Message format for WebSocket communication.
    """

    type: str
    payload: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_signal(cls, signal: Signal) -> "WebSocketMessage":
        """Create a WebSocket message from a queue signal."""
        payload: dict[str, Any] = {"job_name": signal.job_name}
        if signal.is_operation_signal:
            payload["operation_id"] = signal.operation_id
        return cls(
            type=signal.type,
            payload=payload,
            timestamp=signal.timestamp,
        )

"""
Batch Execution Scheduler

Runs named batches of operations through a shared async transform with bounded
concurrency, a startup cooldown and throttled retries, one batch at a time.
"""

__version__ = "1.0.0"

from batcher.engine import Job, ManualClock, Operation, Queue  # noqa: E402
from batcher.types.job import JobOptions  # noqa: E402

__all__ = ["Job", "JobOptions", "ManualClock", "Operation", "Queue", "__version__"]

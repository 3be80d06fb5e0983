"""
Scheduling engine.
Contains the operation, job and queue state machines and their supporting clock and signal bus.
"""

from batcher.engine.clock import AsyncioClock, Clock, ManualClock
from batcher.engine.job import Job
from batcher.engine.operation import Operation
from batcher.engine.queue import Queue
from batcher.engine.signals import SignalBus, Subscription

__all__ = [
    "Operation",
    "Job",
    "Queue",
    "Clock",
    "AsyncioClock",
    "ManualClock",
    "SignalBus",
    "Subscription",
]

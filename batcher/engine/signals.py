"""
Publish/subscribe registry held by every operation, job and queue.
"""

import itertools
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from batcher.constants import SignalType
from batcher.types.events import Signal

logger = logging.getLogger(__name__)

SignalHandler = Callable[[Signal], None]


@dataclass(eq=False)
class Subscription:
    """A handler registered on a bus. An empty ``types`` set matches every signal."""

    id: int
    handler: SignalHandler
    types: frozenset[SignalType]
    once: bool = False
    active: bool = True

    def matches(self, signal: Signal) -> bool:
        return self.active and (not self.types or signal.type in self.types)


class SignalBus:
    """
    Synchronous signal delivery in subscription order.

    A signal published while the bus is already delivering (a handler
    publishing on the same bus) is queued and delivered after the current
    signal has reached every subscriber, so handlers never observe their
    emitter mid-delivery and nested publishing does not grow the stack.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._pending: deque[Signal] = deque()
        self._delivering = False
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        handler: SignalHandler,
        types: SignalType | Iterable[SignalType] | None = None,
        *,
        once: bool = False,
    ) -> Subscription:
        """
        Register a handler.

        Args:
            handler: Called with each matching signal.
            types: One signal type, several, or None for all of them.
            once: Remove the subscription after its first delivery.

        Returns:
            The subscription, usable with :meth:`unsubscribe`.
        """
        if types is None:
            selected: frozenset[SignalType] = frozenset()
        elif isinstance(types, SignalType):
            selected = frozenset({types})
        else:
            selected = frozenset(types)
        subscription = Subscription(
            id=next(self._ids),
            handler=handler,
            types=selected,
            once=once,
        )
        self._subscriptions.append(subscription)
        return subscription

    def once(
        self,
        handler: SignalHandler,
        types: SignalType | Iterable[SignalType] | None = None,
    ) -> Subscription:
        """Register a handler for the next matching signal only."""
        return self.subscribe(handler, types, once=True)

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, signal: Signal) -> None:
        """Deliver a signal to every matching subscriber."""
        self._pending.append(signal)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._delivering = False

    def _deliver(self, signal: Signal) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.matches(signal):
                continue
            if subscription.once:
                self.unsubscribe(subscription)
            try:
                subscription.handler(signal)
            except Exception:
                logger.exception(
                    "Signal handler raised",
                    extra={
                        "signal": signal.type.value,
                        "job_name": signal.job_name,
                        "operation_id": signal.operation_id,
                    },
                )

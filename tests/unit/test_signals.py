"""
Unit tests for the signal bus.
"""

from batcher.constants import SignalType
from batcher.engine.signals import SignalBus
from batcher.types.events import Signal


class TestSignalBus:
    """Tests for SignalBus."""

    def test_subscriber_receives_all_signals_by_default(self):
        """Test a subscription without types matches everything."""
        bus = SignalBus()
        received = []
        bus.subscribe(received.append)

        bus.publish(Signal.job_started("a"))
        bus.publish(Signal.operation_started(1))

        assert [s.type for s in received] == [
            SignalType.JOB_STARTED,
            SignalType.OPERATION_STARTED,
        ]

    def test_type_filter(self):
        """Test subscribing to selected signal types."""
        bus = SignalBus()
        received = []
        bus.subscribe(received.append, SignalType.OPERATION_FAILED)

        bus.publish(Signal.operation_started(1))
        bus.publish(Signal.operation_failed(1))

        assert len(received) == 1
        assert received[0].type == SignalType.OPERATION_FAILED

    def test_once_subscription_fires_once(self):
        """Test once subscriptions are removed after delivery."""
        bus = SignalBus()
        received = []
        bus.once(received.append, SignalType.JOB_COMPLETED)

        bus.publish(Signal.job_completed("a"))
        bus.publish(Signal.job_completed("a"))

        assert len(received) == 1
        assert len(bus) == 0

    def test_unsubscribe(self):
        """Test unsubscribed handlers stop receiving signals."""
        bus = SignalBus()
        received = []
        subscription = bus.subscribe(received.append)

        bus.unsubscribe(subscription)
        bus.publish(Signal.job_started("a"))

        assert received == []

    def test_nested_publish_is_delivered_after_current_signal(self):
        """Test a handler publishing on the same bus does not interleave deliveries."""
        bus = SignalBus()
        order = []

        def first(signal: Signal) -> None:
            order.append(("first", signal.type))
            if signal.type is SignalType.JOB_STARTED:
                bus.publish(Signal.job_completed("a"))

        def second(signal: Signal) -> None:
            order.append(("second", signal.type))

        bus.subscribe(first)
        bus.subscribe(second)
        bus.publish(Signal.job_started("a"))

        assert order == [
            ("first", SignalType.JOB_STARTED),
            ("second", SignalType.JOB_STARTED),
            ("first", SignalType.JOB_COMPLETED),
            ("second", SignalType.JOB_COMPLETED),
        ]

    def test_failing_handler_does_not_stop_delivery(self):
        """Test other subscribers still receive a signal when one raises."""
        bus = SignalBus()
        received = []

        def broken(signal: Signal) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.publish(Signal.job_started("a"))

        assert len(received) == 1


class TestSignal:
    """Tests for Signal."""

    def test_for_job_tags_operation_signal(self):
        """Test forwarding adds the job name and keeps the operation id."""
        signal = Signal.operation_completed("op-1").for_job("nightly")

        assert signal.job_name == "nightly"
        assert signal.operation_id == "op-1"
        assert signal.is_operation_signal is True

    def test_job_signal_has_no_operation(self):
        """Test job signals carry only the job name."""
        signal = Signal.job_started("nightly")

        assert signal.is_operation_signal is False
        assert signal.job_name == "nightly"

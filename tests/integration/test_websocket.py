"""
Integration tests for the signal WebSocket.
"""

import asyncio
import json
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from batcher.api.main import create_app
from batcher.api.websocket import ConnectionInfo, WebSocketManager
from batcher.engine.job import Job
from batcher.engine.queue import Queue
from batcher.types.events import Signal
from batcher.worker.transforms import echo


@pytest.fixture
def sync_client(queue: Queue) -> Iterator[TestClient]:
    """Client keeping one event loop alive across requests."""
    with TestClient(create_app(queue)) as client:
        yield client


class TestJobsWebSocket:
    """Tests for /ws/jobs."""

    def test_ping(self, sync_client: TestClient):
        """Test ping is answered with pong."""
        with sync_client.websocket_connect("/ws/jobs") as websocket:
            websocket.send_json({"action": "ping"})

            assert websocket.receive_json() == {"type": "pong"}

    def test_invalid_message(self, sync_client: TestClient):
        """Test malformed and unknown messages get an error reply."""
        with sync_client.websocket_connect("/ws/jobs") as websocket:
            websocket.send_text("not json")
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"action": "dance"})
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"action": "subscribe"})
            assert websocket.receive_json()["type"] == "error"

    def test_subscribed_client_receives_job_signals(self, sync_client: TestClient):
        """Test every signal of a subscribed job is relayed."""
        with sync_client.websocket_connect("/ws/jobs") as websocket:
            websocket.send_json({"action": "subscribe", "job_name": "streamed"})
            assert websocket.receive_json() == {"type": "subscribed", "job_name": "streamed"}

            response = sync_client.post(
                "/v1/jobs",
                json={"name": "streamed", "transform": "echo", "data": [{"id": "only"}]},
            )
            assert response.status_code == 202

            messages = [websocket.receive_json() for _ in range(4)]

        assert {m["type"] for m in messages} == {
            "job.started",
            "operation.started",
            "operation.completed",
            "job.completed",
        }
        assert all(m["payload"]["job_name"] == "streamed" for m in messages)
        operation_messages = [m for m in messages if m["type"].startswith("operation.")]
        assert all(m["payload"]["operation_id"] == "only" for m in operation_messages)

    def test_unsubscribe(self, sync_client: TestClient):
        """Test unsubscribing is acknowledged."""
        with sync_client.websocket_connect("/ws/jobs") as websocket:
            websocket.send_json({"action": "unsubscribe", "job_name": "streamed"})

            assert websocket.receive_json() == {"type": "unsubscribed", "job_name": "streamed"}


class TestConnectionInfo:
    """Tests for per-connection job filtering."""

    def test_no_subscriptions_wants_everything(self):
        connection = ConnectionInfo(websocket=None)

        assert connection.wants(Signal.job_started("any"))

    def test_subscriptions_filter_by_job(self):
        connection = ConnectionInfo(websocket=None, subscribed_jobs={"wanted"})

        assert connection.wants(Signal.operation_started(1).for_job("wanted"))
        assert not connection.wants(Signal.job_started("other"))


class FakeWebSocket:
    """Records sent messages; can be slow or broken."""

    def __init__(self, delay: float = 0.0, broken: bool = False):
        self.delay = delay
        self.broken = broken
        self.sent: list[dict] = []

    async def accept(self) -> None:
        pass

    async def send_text(self, text: str) -> None:
        if self.broken:
            raise RuntimeError("connection reset")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append(json.loads(text))


def relayed(websocket: FakeWebSocket) -> list[tuple[str, str]]:
    return [(m["type"], m["payload"]["job_name"]) for m in websocket.sent]


class TestWebSocketManager:
    """Tests for relaying queue signals to connections."""

    async def test_each_connection_receives_signals_in_bus_order(self):
        """Test a slow send does not let later signals overtake earlier ones."""
        manager = WebSocketManager()
        slow, fast = FakeWebSocket(delay=0.01), FakeWebSocket()
        connections = [await manager.connect(slow), await manager.connect(fast)]

        for signal in (Signal.job_completed("a"), Signal.job_started("b"), Signal.job_completed("b")):
            manager.broadcast_signal(signal)
        await asyncio.sleep(0.1)

        expected = [("job.completed", "a"), ("job.started", "b"), ("job.completed", "b")]
        assert relayed(slow) == expected
        assert relayed(fast) == expected

        for connection in connections:
            await manager.disconnect(connection)

    async def test_relays_queue_signals_in_order(self):
        """Test an attached manager streams a whole job run."""
        queue = Queue()
        manager = WebSocketManager()
        manager.attach(queue)
        websocket = FakeWebSocket(delay=0.001)
        connection = await manager.connect(websocket)

        await queue.submit(Job("first", echo, [1]))
        await queue.submit(Job("second", echo, []))
        await asyncio.sleep(0.05)

        assert [m["type"] for m in websocket.sent] == [
            "job.started",
            "operation.started",
            "operation.completed",
            "job.completed",
            "job.started",
            "job.completed",
        ]
        await manager.disconnect(connection)

    async def test_broken_connection_is_dropped(self):
        """Test a failed send removes only that connection."""
        manager = WebSocketManager()
        broken, healthy = FakeWebSocket(broken=True), FakeWebSocket()
        await manager.connect(broken)
        connection = await manager.connect(healthy)

        manager.broadcast_signal(Signal.job_started("a"))
        await asyncio.sleep(0.01)

        assert manager.get_connection_count() == 1
        assert relayed(healthy) == [("job.started", "a")]
        await manager.disconnect(connection)

    async def test_subscriptions_filter_outbox(self):
        """Test only signals of subscribed jobs are queued."""
        manager = WebSocketManager()
        websocket = FakeWebSocket()
        connection = await manager.connect(websocket)
        connection.subscribed_jobs.add("wanted")

        manager.broadcast_signal(Signal.job_started("other"))
        manager.broadcast_signal(Signal.job_started("wanted"))
        await asyncio.sleep(0.01)

        assert relayed(websocket) == [("job.started", "wanted")]
        await manager.disconnect(connection)

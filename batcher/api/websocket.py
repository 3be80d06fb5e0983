"""
WebSocket connection manager streaming queue signals.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field

from fastapi import WebSocket, WebSocketDisconnect

from batcher.constants import (
    WS_MESSAGE_ERROR,
    WS_MESSAGE_PONG,
    WS_MESSAGE_SUBSCRIBED,
    WS_MESSAGE_UNSUBSCRIBED,
)
from batcher.engine.queue import Queue
from batcher.types.events import Signal, WebSocketMessage

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    # Empty means every job.
    subscribed_jobs: set[str] = field(default_factory=set)
    # Serialized signals waiting to be sent, in bus order.
    outbox: asyncio.Queue[str] = field(default_factory=asyncio.Queue)
    sender: asyncio.Task[None] | None = None

    def wants(self, signal: Signal) -> bool:
        return not self.subscribed_jobs or signal.job_name in self.subscribed_jobs


class WebSocketManager:
    """
    Manager for WebSocket connections.

    Subscribes to a queue's signal bus and relays every signal to the
    connections interested in its job. Each connection has its own outbox
    drained by a single sender task, so signals arrive in the order the
    bus delivered them and a slow client does not hold up the others.
    """

    def __init__(self):
        """Initialize the WebSocket manager."""
        self._connections: list[ConnectionInfo] = []

    def attach(self, queue: Queue) -> None:
        """Relay the queue's signals from now on."""
        queue.signals.subscribe(self.broadcast_signal)

    async def connect(self, websocket: WebSocket) -> ConnectionInfo:
        """
        Accept a new WebSocket connection and start its sender.

        Args:
            websocket: The WebSocket connection.

        Returns:
            ConnectionInfo for the new connection.
        """
        await websocket.accept()
        connection = ConnectionInfo(websocket=websocket)
        connection.sender = asyncio.create_task(self._send_loop(connection))
        self._connections.append(connection)

        logger.info("WebSocket connected")
        return connection

    async def disconnect(self, connection: ConnectionInfo) -> None:
        """
        Handle WebSocket disconnection.

        Args:
            connection: The connection to remove.
        """
        if connection in self._connections:
            self._connections.remove(connection)
        sender = connection.sender
        if sender is not None and sender is not asyncio.current_task():
            sender.cancel()

        logger.info("WebSocket disconnected")

    def broadcast_signal(self, signal: Signal) -> None:
        """
        Queue a signal for every interested connection.

        Args:
            signal: The signal to relay.
        """
        connections = [c for c in self._connections if c.wants(signal)]
        if not connections:
            return

        message_json = WebSocketMessage.from_signal(signal).model_dump_json()
        for connection in connections:
            connection.outbox.put_nowait(message_json)

    async def _send_loop(self, connection: ConnectionInfo) -> None:
        while True:
            message_json = await connection.outbox.get()
            try:
                await connection.websocket.send_text(message_json)
            except Exception as e:
                logger.warning(f"Failed to send WebSocket message: {e}")
                await self.disconnect(connection)
                return

    def get_connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)


async def websocket_handler(websocket: WebSocket, manager: WebSocketManager) -> None:
    """
    Handle a WebSocket connection for queue signals.

    Clients send ``{"action": "subscribe", "job_name": ...}`` to narrow the
    stream to given jobs, ``unsubscribe`` to drop one, and ``ping``.

    Args:
        websocket: The WebSocket connection.
        manager: The manager relaying signals.
    """
    connection = await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                action = message.get("action")

                if action == "subscribe":
                    job_name = str(message["job_name"])
                    connection.subscribed_jobs.add(job_name)
                    await websocket.send_json({
                        "type": WS_MESSAGE_SUBSCRIBED,
                        "job_name": job_name,
                    })

                elif action == "unsubscribe":
                    job_name = str(message["job_name"])
                    connection.subscribed_jobs.discard(job_name)
                    await websocket.send_json({
                        "type": WS_MESSAGE_UNSUBSCRIBED,
                        "job_name": job_name,
                    })

                elif action == "ping":
                    await websocket.send_json({"type": WS_MESSAGE_PONG})

                else:
                    raise ValueError(f"unknown action {action!r}")

            except (json.JSONDecodeError, ValueError, KeyError, AttributeError) as e:
                await websocket.send_json({
                    "type": WS_MESSAGE_ERROR,
                    "message": f"Invalid message: {e}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(connection)

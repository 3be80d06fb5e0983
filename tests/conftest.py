"""
Pytest configuration and shared fixtures.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from batcher.api.main import create_app
from batcher.config import Settings
from batcher.engine.clock import ManualClock
from batcher.engine.queue import Queue
from batcher.engine.signals import SignalBus
from batcher.types.events import Signal


@pytest.fixture
def manual_clock() -> ManualClock:
    """A virtual clock starting at zero."""
    return ManualClock()


@pytest.fixture
def record_signals() -> Callable[[SignalBus], list[Signal]]:
    """Collect every signal published on a bus, in order."""
    def record(bus: SignalBus) -> list[Signal]:
        signals: list[Signal] = []
        bus.subscribe(signals.append)
        return signals
    return record


@pytest.fixture
def failing_for() -> Callable[..., Callable[[Any], Any]]:
    """Build a transform that echoes its input but raises for selected values."""
    def build(*failing: Any, delay: float = 0.0):
        async def transform(data: Any) -> Any:
            if delay:
                await asyncio.sleep(delay)
            if data in failing:
                raise ValueError(f"cannot process {data}")
            return data * 10
        return transform
    return build


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    """A directory for persisted job exports."""
    return tmp_path / "exports"


@pytest.fixture
def test_settings(export_dir: Path) -> Settings:
    """Create test settings."""
    return Settings(
        export_completed_jobs_dir=str(export_dir),
        log_level="DEBUG",
        log_format="console",
        default_throttle_ms=10,
    )


@pytest.fixture
def queue() -> Queue:
    """A queue without persistence."""
    return Queue()


@pytest_asyncio.fixture
async def app(queue: Queue) -> FastAPI:
    """Create a FastAPI app serving the test queue."""
    return create_app(queue)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

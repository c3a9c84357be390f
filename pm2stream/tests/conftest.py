"""
Pytest configuration for pm2stream tests.

This file contains fixtures and fakes for the process attachment, the
reconnect scheduler and the notifier.
"""

import asyncio
import pytest
from typing import Any, Callable, List
from unittest.mock import AsyncMock, Mock

from pm2stream.config.config import Config
from pm2stream.core.exceptions import AttachmentError
from pm2stream.core.streamer import ProcessLogStreamer
from pm2stream.storage.log_store import MemoryLogStore


ENV_VARS = [
    'PM2STREAM_CONFIG',
    'PM2STREAM_LOG_LEVEL',
    'PM2STREAM_PROCESS',
    'PM2_LOGGING_ENABLED',
    'DISCORD_WEBHOOK_URL',
    'DISCORD_ADMIN_ROLE_ID',
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration tests independent of the caller's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeAttachment:
    """Attachment fed from in-memory bytes instead of a subprocess."""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", exit_code: int = 0, close: bool = True):
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.exit_code = exit_code
        self.killed = False
        self._exited = asyncio.Event()
        if stdout:
            self.stdout.feed_data(stdout)
        if stderr:
            self.stderr.feed_data(stderr)
        if close:
            self.close()

    def close(self):
        if not self._exited.is_set():
            self.stdout.feed_eof()
            self.stderr.feed_eof()
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.exit_code

    def kill(self):
        self.killed = True
        self.close()


class FakeProcessSource:
    """
    Attachment source driven by a script of outcomes.

    Each outcome is either an exception to raise or keyword arguments for
    FakeAttachment. Once the script is exhausted every open fails. A
    non-zero ``delay`` keeps each open pending for that many seconds.
    """

    def __init__(self, outcomes=None, delay: float = 0):
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.open_calls = 0
        self.attachments: List[FakeAttachment] = []

    async def open(self) -> FakeAttachment:
        self.open_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if self.outcomes else AttachmentError("pm2 not found")
        if isinstance(outcome, Exception):
            raise outcome
        attachment = FakeAttachment(**outcome)
        self.attachments.append(attachment)
        return attachment


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records reconnect timers instead of waiting for them."""

    def __init__(self):
        self.handles: List[FakeHandle] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def delays(self) -> List[float]:
        return [handle.delay for handle in self.handles]

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    async def fire_next(self):
        handle = self.pending[0]
        handle.fired = True
        handle.callback()
        await settle()


async def settle(rounds: int = 20):
    """Let scheduled tasks run until the loop is idle."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_notifier(configured: bool = True) -> Mock:
    notifier = Mock()
    notifier.is_configured = Mock(return_value=configured)
    notifier.send_log_alert = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def sample_config():
    """Create a sample configuration for testing."""
    config = Config()
    config.store.backend = 'memory'
    return config


@pytest.fixture
def memory_store():
    return MemoryLogStore(max_entries=100)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def notifier():
    return make_notifier(configured=True)


@pytest.fixture
def make_streamer(sample_config, memory_store, scheduler, notifier):
    """Build a streamer around fakes; keyword arguments replace collaborators."""
    def factory(outcomes=None, config=None, **overrides: Any) -> ProcessLogStreamer:
        kwargs = {
            'process_source': FakeProcessSource(outcomes),
            'store': memory_store,
            'notifier': notifier,
            'scheduler': scheduler,
        }
        kwargs.update(overrides)
        return ProcessLogStreamer(config or sample_config, **kwargs)
    return factory

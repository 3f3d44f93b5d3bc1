"""
Shared pytest fixtures and configuration.
"""

import asyncio
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from nudge.api.app import create_app
from nudge.config import Config


class ManualClock:
    """Monotonic clock a test can move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeReasoningClient:
    """
    Stands in for the Gemini client. Replies are served in order; once they
    run out every call answers {"type": "none"}.
    """

    def __init__(self, replies=None, error=None, delay: float = 0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.hold = None          # asyncio.Event; when set, calls wait for it
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.hold is not None:
            await self.hold.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.replies:
            reply = self.replies.pop(0)
            return reply if isinstance(reply, str) else json.dumps(reply)
        return '{"type": "none"}'


class RecordingPresenter:
    def __init__(self):
        self.shown = []

    def present(self, session_id, record):
        self.shown.append((session_id, record))


async def wait_until(predicate, attempts: int = 400):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def reasoning():
    return FakeReasoningClient()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def app(reasoning):
    """Fresh app per test; the periodic loop is off so cycles only run on request."""
    return create_app(client=reasoning, cfg=Config(cycle_interval_s=0))


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac

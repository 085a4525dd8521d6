import asyncio

import pytest


class FakeSocket:
    """In-memory stand-in for a websockets connection."""

    def __init__(self, messages=()):
        self.sent = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()
        for message in messages:
            self._queue.put_nowait(message)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self._queue.put_nowait(None)

    def push(self, message):
        self._queue.put_nowait(message)

    def end(self):
        self._queue.put_nowait(None)


class ScriptedConnector:
    """Returns the scripted sockets in order; ``None`` entries fail to connect."""

    def __init__(self, script=(), default=None):
        self.script = list(script)
        self.default = default
        self.calls = 0

    def __call__(self, url):
        self.calls += 1
        outcome = self.script.pop(0) if self.script else self.default
        if outcome is None:
            raise OSError("connection refused")
        return outcome


async def _wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def scripted_connector():
    return ScriptedConnector


@pytest.fixture
def wait_until():
    return _wait_until

"""
Fakes for the network edges of the relay.

FakeSocket stands in for a websockets client connection and FakeConnector for
``websockets.connect``, so links can be exercised without a network.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
from websockets.exceptions import ConnectionClosed

from livecaptions.handlers import error_handler as error_handler_module
from livecaptions.handlers.error_handler import ErrorHandler

_CLOSED = object()
_FAILURE = object()


class FakeSocket:
    """In-memory websocket connection.

    When ``ack`` is set, every transcription_session.update is answered with
    a transcription_session.updated event.
    """

    def __init__(self, ack: Optional[Dict[str, Any]] = None):
        self.ack = ack
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        data = json.loads(message)
        self.sent.append(data)
        if self.ack is not None and data.get("type") == "transcription_session.update":
            self.push(self.ack)

    def push(self, event: Any) -> None:
        self._incoming.put_nowait(event if isinstance(event, str) else json.dumps(event))

    def fail(self) -> None:
        """Make the next receive raise an error other than a close."""
        self._incoming.put_nowait(_FAILURE)

    def drop(self) -> None:
        """Simulate the remote end going away."""
        self._incoming.put_nowait(_CLOSED)

    async def recv(self) -> str:
        item = await self._incoming.get()
        if item is _CLOSED:
            self.closed = True
            raise ConnectionClosed(None, None)
        if item is _FAILURE:
            raise RuntimeError("receive failed")
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        try:
            return await self.recv()
        except ConnectionClosed:
            raise StopAsyncIteration

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_CLOSED)

    def sent_of_type(self, message_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m.get("type") == message_type]


class FakeConnector:
    """Replacement for websockets.connect returning queued sockets or raising errors."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def add(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    async def __call__(self, url: str, **kwargs: Any) -> FakeSocket:
        self.calls.append({"url": url, **kwargs})
        if not self.outcomes:
            raise OSError("connection refused")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


ACK = {"type": "transcription_session.updated", "session": {}}


class RecordingSleep:
    """Injected sleep that records delays and yields to the loop."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def fake_socket():
    def _make(ack: Optional[Dict[str, Any]] = ACK) -> FakeSocket:
        return FakeSocket(ack=ack)

    return _make


@pytest.fixture
def fake_connector():
    return FakeConnector


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def recorded_errors(monkeypatch):
    """Installs a fresh global error handler and returns its recorded entries."""
    handler = ErrorHandler()
    monkeypatch.setattr(error_handler_module, "_global_error_handler", handler)
    return handler._recent

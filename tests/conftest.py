import asyncio
import time

import pytest
from starlette.websockets import WebSocketState

from hostlink.relay.connection import Connection


class FakeWebSocket:
    """Stands in for a Starlette WebSocket in coroutine-level tests."""

    def __init__(self, hang: bool = False, fail: bool = False, hang_close: bool = False):
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED
        self.sent = []
        self.close_code = None
        self.hang = hang
        self.fail = fail
        self.hang_close = hang_close

    async def _send(self, data):
        if self.fail:
            raise RuntimeError("Cannot call \"send\" once a close message has been sent.")
        if self.hang:
            await asyncio.Event().wait()
        self.sent.append(data)

    async def send_text(self, data: str):
        await self._send(data)

    async def send_bytes(self, data: bytes):
        await self._send(data)

    async def close(self, code: int = 1000, reason: str = ""):
        if self.hang_close:
            await asyncio.Event().wait()
        self.application_state = WebSocketState.DISCONNECTED
        self.close_code = code

    def drop(self):
        """Simulate the remote side going away."""
        self.client_state = WebSocketState.DISCONNECTED


@pytest.fixture
def make_conn():
    def _make(**kwargs) -> Connection:
        return Connection(FakeWebSocket(**kwargs))

    return _make


def _wait_for_relay(client, predicate, timeout: float = 2.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        status = client.get("/relay/slots").json()
        if predicate(status):
            return status
        if time.monotonic() > deadline:
            raise AssertionError(f"relay never reached expected state: {status}")
        time.sleep(0.01)


@pytest.fixture
def wait_for_relay():
    """Poll /relay/slots until a predicate accepts the status payload."""
    return _wait_for_relay

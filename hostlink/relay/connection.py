"""Role names and the per-socket wrapper shared by the registry and router."""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
from enum import Enum
from typing import Iterable, Optional, Union

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]

# Close code sent to an occupant replaced by a newer registration.
SUPERSEDED_CLOSE_CODE = 4001

CLOSE_TIMEOUT_S = float(os.getenv("HOSTLINK_CLOSE_TIMEOUT_S", "2.0"))

_ids = itertools.count(1)


class Role(str, Enum):
    CONTROLLER = "controller"
    PRODUCER = "producer"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ConnectionState(str, Enum):
    OPEN = "open"
    REGISTERED = "registered"
    CLOSED = "closed"


class Connection:
    """
    One accepted relay socket.

    The registry only records identity; the lifecycle task that accepted the
    socket owns it. Sends are serialised per connection so frames from
    different senders never interleave on the wire.
    """

    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.conn_id = next(_ids)
        self.role: Optional[Role] = None
        self.closed = False
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        role = self.role.value if self.role else "-"
        return f"<Connection #{self.conn_id} role={role} state={self.state.value}>"

    @property
    def is_open(self) -> bool:
        if self.closed:
            return False
        return (
            self.ws.application_state == WebSocketState.CONNECTED
            and self.ws.client_state == WebSocketState.CONNECTED
        )

    @property
    def state(self) -> ConnectionState:
        if not self.is_open:
            return ConnectionState.CLOSED
        if self.role is not None:
            return ConnectionState.REGISTERED
        return ConnectionState.OPEN

    async def send(self, frame: Frame):
        async with self._lock:
            if isinstance(frame, bytes):
                await self.ws.send_bytes(frame)
            else:
                await self.ws.send_text(frame)

    async def close(self, code: int = 1000, reason: str = "", timeout: float = CLOSE_TIMEOUT_S):
        if self.closed:
            return
        self.closed = True
        self.role = None
        if (
            self.ws.application_state != WebSocketState.CONNECTED
            or self.ws.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await asyncio.wait_for(self.ws.close(code=code, reason=reason), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("close of %r timed out after %.1fs, abandoning it", self, timeout)
        except (RuntimeError, OSError) as exc:
            # Peer already went away; nothing left to close.
            logger.debug("close of %r failed: %s", self, exc)


async def close_connections(
    conns: Iterable[Connection], code: int, reason: str, timeout: float = CLOSE_TIMEOUT_S
):
    """Close *conns* concurrently, each bounded by *timeout*."""

    await asyncio.gather(*(c.close(code=code, reason=reason, timeout=timeout) for c in conns))

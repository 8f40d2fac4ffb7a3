"""Peer-side helper for talking to the relay over `websockets`."""

from __future__ import annotations

import logging
from typing import Any

import websockets

from .classifier import InboundUnit, classify, encode_envelope
from .connection import Role

logger = logging.getLogger(__name__)


class RelayClient:
    """
    One peer of the relay. Announces its role on connect; after that,
    control envelopes go out as text frames and payloads as binary frames.
    """

    def __init__(self, ws: Any, role: Role):
        self.ws = ws
        self.role = role

    @classmethod
    async def connect(cls, url: str, role: Role, **connect_kwargs) -> "RelayClient":
        ws = await websockets.connect(url, max_size=None, **connect_kwargs)
        client = cls(ws, Role(role))
        await client.announce()
        logger.info("connected to %s as %s", url, client.role.value)
        return client

    async def announce(self):
        await self.ws.send(encode_envelope({"role": self.role.value}))

    async def send_control(self, to: Role, **fields: Any):
        envelope = dict(fields)
        envelope["to"] = Role(to).value
        await self.ws.send(encode_envelope(envelope))

    async def send_frame(self, data: bytes):
        await self.ws.send(bytes(data))

    async def receive(self) -> InboundUnit:
        return classify(await self.ws.recv())

    async def close(self):
        await self.ws.close()

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

import asyncio
import logging
import os
from collections import Counter
from enum import Enum
from typing import Dict

from starlette.websockets import WebSocketDisconnect

from .classifier import Control, InboundUnit, Opaque
from .connection import SUPERSEDED_CLOSE_CODE, Connection, Frame, Role
from .registry import RelayRegistry

SEND_TIMEOUT_S = float(os.getenv("HOSTLINK_SEND_TIMEOUT_S", "2.0"))

logger = logging.getLogger(__name__)


class Delivery(str, Enum):
    FORWARDED = "forwarded"
    REGISTERED = "registered"
    ROUTE_MISS = "route_miss"
    SEND_TIMEOUT = "send_timeout"
    TRANSPORT_ERROR = "transport_error"
    IGNORED = "ignored"


class Router:
    """
    Role-aware forwarding:
      - control with "role" -> registry
      - control with "to"   -> that role, received frame untouched
      - opaque              -> always the controller
    Delivery is best effort. Nothing is reported back to the sender.
    """

    def __init__(self, registry: RelayRegistry, send_timeout: float = SEND_TIMEOUT_S):
        self.registry = registry
        self.send_timeout = send_timeout
        self.stats: Counter = Counter()

    async def route(self, sender: Connection, unit: InboundUnit) -> Delivery:
        if isinstance(unit, Opaque):
            outcome = await self.forward(Role.CONTROLLER, unit.raw)
        else:
            outcome = await self._route_control(sender, unit)
        self.stats[outcome.value] += 1
        return outcome

    async def _route_control(self, sender: Connection, unit: Control) -> Delivery:
        outcome = Delivery.IGNORED
        if unit.role is not None:
            superseded = await self.registry.register(unit.role, sender)
            if superseded is not None:
                await superseded.close(
                    code=SUPERSEDED_CLOSE_CODE, reason="superseded", timeout=self.send_timeout
                )
            outcome = Delivery.REGISTERED
        if unit.destination is not None:
            outcome = await self.forward(unit.destination, unit.raw)
        elif "to" in unit.fields:
            logger.debug("%r addressed unknown role %r", sender, unit.fields["to"])
        return outcome

    async def forward(self, role: Role, frame: Frame) -> Delivery:
        dest = await self.registry.lookup(role)
        if dest is None:
            logger.debug("no open %s, dropping %d-byte frame", role.value, len(frame))
            return Delivery.ROUTE_MISS
        try:
            await asyncio.wait_for(dest.send(frame), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("send to %r timed out after %.1fs, frame dropped", dest, self.send_timeout)
            return Delivery.SEND_TIMEOUT
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.info("send to %r failed: %s", dest, exc)
            return Delivery.TRANSPORT_ERROR
        return Delivery.FORWARDED

    def snapshot_stats(self) -> Dict[str, int]:
        return {d.value: self.stats.get(d.value, 0) for d in Delivery}

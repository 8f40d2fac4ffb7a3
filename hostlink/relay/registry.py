import asyncio
import logging
from typing import Dict, List, Optional

from .connection import CLOSE_TIMEOUT_S, Connection, Role, close_connections

logger = logging.getLogger(__name__)


class RelayRegistry:
    """
    Role slots for the relay:
      - at most one connection per role
      - the latest announcement for a role wins
      - a connection holds a single role; re-announcing moves it
    Every read and write goes through one lock. Callers do socket I/O only
    after the lock is released, which is why register() hands back the
    superseded occupant instead of closing it.
    """

    def __init__(self):
        self._slots: Dict[Role, Optional[Connection]] = {role: None for role in Role}
        self._lock = asyncio.Lock()

    async def register(self, role: Role, conn: Connection) -> Optional[Connection]:
        async with self._lock:
            previous = self._slots[role]
            for other, occupant in self._slots.items():
                if other is not role and occupant is conn:
                    self._slots[other] = None
                    logger.info("%r moved from %s to %s", conn, other.value, role.value)
            self._slots[role] = conn
            conn.role = role
            if previous is not None and previous is not conn:
                previous.role = None
        if previous is conn:
            return None
        if previous is not None:
            logger.info("%r superseded %r as %s", conn, previous, role.value)
        else:
            logger.info("%r registered as %s", conn, role.value)
        return previous

    async def unregister(self, conn: Connection) -> Optional[Role]:
        async with self._lock:
            for role, occupant in self._slots.items():
                if occupant is conn:
                    self._slots[role] = None
                    conn.role = None
                    logger.info("%s slot cleared (%r)", role.value, conn)
                    return role
        return None

    async def lookup(self, role: Role) -> Optional[Connection]:
        async with self._lock:
            conn = self._slots[role]
        if conn is None or not conn.is_open:
            return None
        return conn

    async def snapshot(self) -> Dict[str, Optional[int]]:
        async with self._lock:
            return {
                role.value: (conn.conn_id if conn is not None else None)
                for role, conn in self._slots.items()
            }

    async def close_all(self, timeout: float = CLOSE_TIMEOUT_S):
        async with self._lock:
            occupants: List[Connection] = [c for c in self._slots.values() if c is not None]
            for role in self._slots:
                self._slots[role] = None
        await close_connections(occupants, code=1001, reason="server shutdown", timeout=timeout)

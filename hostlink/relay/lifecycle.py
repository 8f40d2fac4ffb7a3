"""Per-connection task: accept, classify and route every frame, clean up on close."""

from __future__ import annotations

import logging
from typing import Optional, Set

from starlette.websockets import WebSocket, WebSocketDisconnect

from .classifier import classify
from .connection import Connection
from .registry import RelayRegistry
from .router import Router

logger = logging.getLogger(__name__)


async def serve_connection(
    ws: WebSocket,
    registry: RelayRegistry,
    router: Router,
    live: Optional[Set[Connection]] = None,
) -> Connection:
    """
    Drive one relay socket from accept to close.

    A connection that never announces a role stays unregistered but may
    still send opaque frames. Transport failures end this task only; the
    registry slot it held (if any) is cleared on the way out. *live*, when given,
    holds the connection for as long as this task runs.
    """

    await ws.accept()
    conn = Connection(ws)
    if live is not None:
        live.add(conn)
    logger.info("%r connected from %s", conn, ws.client)
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue
            await router.route(conn, classify(frame))
    except WebSocketDisconnect:
        pass
    except (RuntimeError, OSError) as exc:
        logger.info("%r transport error: %s", conn, exc)
    finally:
        role = await registry.unregister(conn)
        await conn.close()
        if live is not None:
            live.discard(conn)
        logger.info("%r disconnected%s", conn, f" (was {role.value})" if role else "")
    return conn

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from ..host.api import router as host_router
from .connection import close_connections
from .lifecycle import serve_connection
from .registry import RelayRegistry
from .router import Router

# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------
HOST = os.getenv("HOSTLINK_HOST", "0.0.0.0")
PORT = int(os.getenv("HOSTLINK_PORT", "5000"))
RELAY_PATH = os.getenv("HOSTLINK_RELAY_PATH", "/")
LOG_LEVEL = os.getenv("HOSTLINK_LOG_LEVEL", "INFO").upper()

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# Startup
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fresh, empty slots on every start; nothing is persisted.
    registry = RelayRegistry()
    app.state.registry = registry
    app.state.router = Router(registry)
    app.state.live = set()

    yield

    await registry.close_all()
    # Unregistered connections hold no slot but are still open
    await close_connections(list(app.state.live), code=1001, reason="server shutdown")
    logger.info("relay stopped")


app = FastAPI(title="hostlink relay", version="0.1.0", lifespan=lifespan)
app.include_router(host_router)


# ------------------------------------------------------------------------------
# WebSocket endpoint
# ------------------------------------------------------------------------------
@app.websocket(RELAY_PATH)
async def relay_socket(ws: WebSocket):
    state = ws.app.state
    await serve_connection(ws, state.registry, state.router, live=state.live)


# ------------------------------------------------------------------------------
# Relay status
# ------------------------------------------------------------------------------
@app.get("/relay/slots")
async def relay_slots(request: Request):
    state = request.app.state
    return JSONResponse(
        {
            "slots": await state.registry.snapshot(),
            "connections": len(state.live),
            "stats": state.router.snapshot_stats(),
        }
    )


def main():
    import uvicorn

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("relay listening on ws://%s:%s%s", HOST, PORT, RELAY_PATH)
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()

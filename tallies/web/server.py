"""FastAPI Web Server - Tallies API backend.

Provides REST API and WebSocket endpoints for the tally counter UI.
Listens only on localhost (127.0.0.1) by default.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from tallies import __version__
from tallies.core.counters import ChangeKind
from tallies.core.session import get_session
from tallies.core.settings import DEFAULT_HOST, DEFAULT_PORT
from tallies.core.validation import ValidationError
from tallies.web.routes import counters, data, selection, settings, stats
from tallies.web.websocket.manager import (
    EventType,
    broadcast_counters_changed,
    get_connection_manager,
    send_counters_state,
    set_server_loop,
)

logger = logging.getLogger(__name__)


def on_counters_changed(kind: ChangeKind, ids: list[str]) -> None:
    """Broadcast repository changes to WebSocket clients."""
    broadcast_counters_changed(kind.value, ids)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Register server's event loop for thread-safe WebSocket broadcasts
    - Register repository callback for WebSocket broadcast

    Shutdown:
    - Unregister the callback and forget the loop
    """
    logger.info("Tallies starting...")

    set_server_loop(asyncio.get_running_loop())

    repository = get_session().repository
    repository.register_callback(on_counters_changed)

    yield

    repository.unregister_callback(on_counters_changed)
    set_server_loop(None)
    logger.info("Tallies stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance.
    """
    app = FastAPI(
        title="Tallies",
        description="Tally counter API",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS - any localhost port
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(counters.router, prefix="/api/counters", tags=["counters"])
    app.include_router(selection.router, prefix="/api/selection", tags=["selection"])
    app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
    app.include_router(data.router, prefix="/api/data", tags=["data"])
    app.include_router(settings.router, prefix="/api/settings", tags=["settings"])

    @app.websocket("/ws/events")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint for real-time events.

        Sends:
        - counters_state: Full counter list on connect
        - counters_changed: Collection mutations
        - undo_available: A deleted counter can be restored
        - theme_change: Theme switched

        Receives:
        - increment: {"id": ..., "amount": n}
        - decrement: {"id": ..., "amount": n}
        """
        manager = get_connection_manager()
        await manager.connect(websocket)

        try:
            counter_list = get_session().repository.get_all()
            await send_counters_state(websocket, [c.to_dict() for c in counter_list])

            while True:
                message = await websocket.receive_json()
                handle_client_message(message, websocket)

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WebSocket error: %s", e)
        finally:
            await manager.disconnect(websocket)

    return app


def handle_client_message(data: dict, websocket: WebSocket) -> None:
    """Handle incoming WebSocket message from client.

    Synchronous handler - repository operations are sync. Resulting
    changes reach clients through the counters_changed broadcast.

    Args:
        data: Parsed JSON message.
        websocket: Client connection (unused).
    """
    event_type = data.get("type")
    event_data = data.get("data") or {}

    if event_type in (EventType.INCREMENT.value, EventType.DECREMENT.value):
        counter_id = event_data.get("id")
        amount = event_data.get("amount", 1)
        if not counter_id:
            logger.warning("WebSocket: %s without counter id", event_type)
            return

        session = get_session()
        try:
            if event_type == EventType.INCREMENT.value:
                counter = session.increment(counter_id, amount)
            else:
                counter = session.decrement(counter_id, amount)
        except ValidationError as e:
            logger.warning("WebSocket: Rejected %s: %s", event_type, e)
            return

        if counter is None:
            logger.warning("WebSocket: Counter '%s' not found", counter_id)
        else:
            logger.debug("WebSocket: %s %s -> %d", event_type, counter_id, counter.count)

    else:
        logger.warning("WebSocket: Unknown message type: %s", event_type)


# Create the app instance
app = create_app()


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Run the web server.

    Args:
        host: Host to bind to (default: localhost only).
        port: Port to listen on (default: 8421).
    """
    import uvicorn

    logger.info("Starting Tallies on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")

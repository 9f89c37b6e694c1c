"""
server/app.py - WebSocket push server.

Every connected client receives {"event": name, "data": payload} messages
for priceUpdate, statusUpdate and log. A client that disconnects only
removes its own observer; the running cycle is not touched.
"""

import asyncio
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from chains.providers import ProviderRegistry
from core.events import (
    EVENT_PRICE_UPDATE,
    EVENT_STATUS_UPDATE,
    BroadcastEventSink,
)
from core.logging import get_logger
from strategy.engine import ArbitrageEngine
from strategy.scheduler import Scheduler

logger = get_logger(__name__)

CLIENT_QUEUE_SIZE = 256


class ClientConnection:
    """One WebSocket client and its outbound queue."""

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=CLIENT_QUEUE_SIZE)
        self.dropped = 0

    def observe(self, event: str, payload: Dict[str, Any]) -> None:
        """Sink observer; safe to call from any thread."""
        self.loop.call_soon_threadsafe(self._enqueue, {"event": event, "data": payload})

    def _enqueue(self, message: Dict[str, Any]) -> None:
        if self.queue.full():
            # Slow client: drop the oldest message
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(message)

    async def pump(self) -> None:
        while True:
            message = await self.queue.get()
            await self.websocket.send_json(message)


class ConnectionManager:
    """Tracks connected clients and ties each one to the event sink."""

    def __init__(self, events: BroadcastEventSink):
        self.events = events
        self.clients: Set[ClientConnection] = set()

    @property
    def client_count(self) -> int:
        return len(self.clients)

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        await websocket.accept()
        client = ClientConnection(websocket, asyncio.get_running_loop())

        # Current state first, so a fresh UI is not blank until the next cycle
        client.observe(EVENT_STATUS_UPDATE, self.events.last_status.to_payload())
        if self.events.last_prices is not None:
            client.observe(EVENT_PRICE_UPDATE, self.events.last_prices.to_payload())

        self.events.subscribe(client.observe)
        self.clients.add(client)
        logger.info("UI client connected", extra={"context": {"clients": self.client_count}})
        return client

    def disconnect(self, client: ClientConnection) -> None:
        self.events.unsubscribe(client.observe)
        self.clients.discard(client)
        logger.info(
            "UI client disconnected",
            extra={"context": {"clients": self.client_count, "dropped": client.dropped}},
        )


def create_app(
    engine: ArbitrageEngine,
    scheduler: Optional[Scheduler] = None,
    providers: Optional[ProviderRegistry] = None,
) -> FastAPI:
    """
    Build the push server.

    The scheduler is not started here; the host owns its lifecycle.
    providers, when given, adds per-endpoint RPC stats to /health.
    """
    events = engine.events
    if not isinstance(events, BroadcastEventSink):
        raise TypeError("create_app requires an engine wired to a BroadcastEventSink")

    app = FastAPI(title="XARB", version="0.1.0")
    manager = ConnectionManager(events)
    app.state.manager = manager
    app.state.engine = engine
    app.state.scheduler = scheduler

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        last = engine.last_result
        return {
            "status": "ok",
            "busy": engine.busy,
            "monitor_only": engine.monitor_only,
            "scheduler_running": scheduler.running if scheduler else False,
            "cycles_run": engine.cycles_run,
            "last_outcome": last.outcome.value if last else None,
            "clients": manager.client_count,
            "rpc": providers.stats_summary() if providers else {},
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        client = await manager.connect(websocket)
        pump = asyncio.create_task(client.pump())
        try:
            # Inbound messages are ignored; receiving detects the close.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(client)
            pump.cancel()
            try:
                await pump
            except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                pass

    return app

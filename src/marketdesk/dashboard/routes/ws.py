"""WebSocket hub broadcasting the shared price map to connected clients."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

log = structlog.get_logger(__name__)

router = APIRouter()


class PriceHub:
    """Manages WebSocket connections and broadcasts JSON payloads to all clients."""

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the active connections list."""
        await ws.accept()
        self.connections.append(ws)
        log.info("price_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Remove a WebSocket connection from the active connections list."""
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("price_ws_disconnected", total=len(self.connections))

    async def broadcast(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to all connected clients, removing broken connections."""
        for ws in self.connections.copy():
            try:
                await ws.send_json(payload)
            except Exception:
                self.connections.remove(ws)
                log.warning("price_ws_broadcast_error", remaining=len(self.connections))


def price_payload(prices: Mapping[str, float]) -> dict[str, Any]:
    return {"type": "prices", "prices": dict(prices)}


@router.websocket("/ws/prices")
async def prices_endpoint(websocket: WebSocket) -> None:
    """Push the full price map on connect and after every ticker flush."""
    hub: PriceHub = websocket.app.state.hub
    await hub.connect(websocket)
    market_data = websocket.app.state.market_data
    if market_data is not None:
        await websocket.send_json(price_payload(market_data.cache.snapshot()))
    try:
        while True:
            # Consume messages to keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(websocket)

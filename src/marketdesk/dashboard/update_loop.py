"""Price broadcast loop for the WebSocket hub.

The shared cache notifies synchronously after each ticker flush; the
listener only sets an event, and this loop does the sending. Flushes that
arrive while a broadcast is in flight collapse into one more broadcast.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import structlog
from fastapi import FastAPI

from marketdesk.dashboard.routes.ws import price_payload

log = structlog.get_logger(__name__)


async def price_broadcast_loop(app: FastAPI) -> None:
    """Broadcast the price map to every WebSocket client after each cache notification.

    Runs until cancelled. Unsubscribes from the cache on exit.
    """
    market_data = app.state.market_data
    hub = app.state.hub
    pending = asyncio.Event()

    def _on_prices(_prices: Mapping[str, float]) -> None:
        pending.set()

    unsubscribe = market_data.subscribe_to_price_updates(_on_prices)
    log.info("price_broadcast_loop_started")
    try:
        while True:
            await pending.wait()
            pending.clear()
            if not hub.connections:
                continue
            try:
                await hub.broadcast(price_payload(market_data.cache.snapshot()))
            except Exception as e:
                log.error("price_broadcast_error", error=str(e))
    finally:
        unsubscribe()
        log.info("price_broadcast_loop_stopped")

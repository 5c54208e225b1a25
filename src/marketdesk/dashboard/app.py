"""FastAPI application factory with JSON API routes and the price WebSocket hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from marketdesk.dashboard.routes import api, ws
from marketdesk.dashboard.routes.ws import PriceHub


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic and to put
                  ``market_data`` and ``momentum`` on ``app.state``.

    Returns:
        Configured FastAPI application with the WebSocket hub and routes.
    """
    app = FastAPI(
        title="Market Desk",
        lifespan=lifespan,
    )

    app.state.hub = PriceHub()

    # Wired by main.py lifespan
    app.state.market_data = None
    app.state.momentum = None

    app.include_router(api.router, prefix="/api")
    app.include_router(ws.router)

    return app

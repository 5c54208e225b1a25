"""Entry point for the market desk service.

Wires all components together and optionally embeds the FastAPI dashboard.
When the dashboard is enabled (default), the feeds and the dashboard share a
single asyncio event loop via uvicorn's programmatic API and FastAPI's
lifespan context manager. Without it, the feeds run headless until
SIGINT/SIGTERM.

Component wiring order (in _build_components):
1. BinanceClient (REST snapshots via ccxt)
2. Database + FolderStore (persisted folder structure)
3. MarketDataService (shared price cache and throttled projections)
4. MomentumService (fixed-count and fixed-duration trackers)

Startup order: exchange, database, ticker feed, folder load, live tracker
subscription. Shutdown runs in reverse.
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from marketdesk.config import AppSettings
from marketdesk.exchange.binance_client import BinanceClient
from marketdesk.logging import get_logger, setup_logging
from marketdesk.market_data.service import MarketDataService
from marketdesk.momentum.service import MomentumService
from marketdesk.storage.database import Database
from marketdesk.storage.folder_store import FolderStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT open any connection -- that happens in _start_components,
    called from the lifespan (dashboard mode) or run() (headless mode).

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    exchange_client = BinanceClient(settings.stream)
    database = Database(settings.storage.db_path)
    folder_store = FolderStore(database)
    market_data = MarketDataService(exchange_client, settings.stream, settings.throttle)
    momentum = MomentumService(
        market_data.cache,
        settings.momentum,
        settings.live_momentum,
        store=folder_store,
    )
    return {
        "exchange_client": exchange_client,
        "database": database,
        "folder_store": folder_store,
        "market_data": market_data,
        "momentum": momentum,
    }


async def _start_components(components: dict[str, Any]) -> None:
    await components["exchange_client"].connect()
    await components["database"].connect()
    await components["market_data"].start()
    await components["momentum"].load()
    components["momentum"].attach()


async def _stop_components(components: dict[str, Any]) -> None:
    await components["momentum"].close()
    await components["market_data"].close()
    await components["database"].close()
    await components["exchange_client"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: stores services on app.state, opens the exchange, database
    and feeds, restores folders and starts the price broadcast loop.

    On shutdown: cancels the broadcast loop, then stops every component.
    """
    from marketdesk.dashboard.update_loop import price_broadcast_loop

    logger = get_logger("marketdesk.main")
    components = app.state.components

    app.state.market_data = components["market_data"]
    app.state.momentum = components["momentum"]

    await _start_components(components)
    broadcast_task = asyncio.create_task(price_broadcast_loop(app))

    logger.info("lifespan_started")

    yield

    broadcast_task.cancel()
    try:
        await broadcast_task
    except asyncio.CancelledError:
        pass

    await _stop_components(components)
    logger.info("market_desk_stopped")


async def _run_headless(components: dict[str, Any]) -> None:
    """Run feeds and trackers without a web server until SIGINT/SIGTERM."""
    logger = get_logger("marketdesk.main")
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)

    try:
        await _start_components(components)
        await stop_event.wait()
    finally:
        await _stop_components(components)
        logger.info("market_desk_stopped")


async def run() -> None:
    """Run the market desk.

    When the dashboard is enabled (DASHBOARD_ENABLED=true, the default):
    - Creates the FastAPI app with lifespan
    - Runs feeds and dashboard in a single asyncio event loop via uvicorn

    When the dashboard is disabled (DASHBOARD_ENABLED=false):
    - Runs the feeds and trackers directly without a web server
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("marketdesk.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from marketdesk.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        logger.info(
            "starting_without_dashboard",
            quote_asset=settings.stream.quote_asset,
            db_path=settings.storage.db_path,
        )
        await _run_headless(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()

"""Market data facade: the single place consumers get prices, books and trades from.

Owns the shared ticker projection and one projection per (feed kind, symbol)
for depth, trades and klines. Watching a symbol that is already watched
reuses the existing connection instead of opening a second one.
"""

from collections.abc import Callable
from typing import Any

import websockets

from marketdesk.config import PriceChangePeriod, StreamSettings, ThrottleSettings
from marketdesk.exchange.client import ExchangeClient
from marketdesk.logging import get_logger
from marketdesk.market_data.klines import KlineProjection
from marketdesk.market_data.order_book import OrderBookProjection
from marketdesk.market_data.price_cache import PriceListener, SharedPriceCache, Unsubscribe
from marketdesk.market_data.ticker_feed import TickerProjection
from marketdesk.market_data.trades import RecentTradesProjection
from marketdesk.models import Coin, Kline, OrderBookSnapshot, Trade

logger = get_logger(__name__)


class MarketDataService:
    """Shared subscriptions to the exchange feeds, exposed as read-only snapshots."""

    def __init__(
        self,
        client: ExchangeClient,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        cache: SharedPriceCache | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._client = client
        self._stream_settings = stream_settings
        self._throttle_settings = throttle_settings
        self._connect = connect
        self.cache = cache or SharedPriceCache()
        self._ticker: TickerProjection | None = None
        self._order_books: dict[str, OrderBookProjection] = {}
        self._trades: dict[str, RecentTradesProjection] = {}
        self._klines: dict[tuple[str, str], KlineProjection] = {}

    # ──────────────────────────────────────────────
    # Ticker / shared price cache
    # ──────────────────────────────────────────────

    async def start(self, period: PriceChangePeriod | None = None) -> None:
        """Open the shared ticker projection (snapshot + stream)."""
        if self._ticker is not None:
            logger.warning("market_data_already_started")
            return
        self._ticker = TickerProjection(
            self._client,
            self.cache,
            self._stream_settings,
            self._throttle_settings,
            period=period,
            connect=self._connect,
        )
        await self._ticker.start()

    async def set_period(self, period: PriceChangePeriod) -> None:
        """Restart the ticker projection with a different price-change period."""
        if self._ticker is not None and self._ticker.period == period:
            return
        if self._ticker is not None:
            await self._ticker.close()
            self._ticker = None
        await self.start(period)

    def get_current_price(self, symbol: str) -> float:
        """Freshest streamed price, ahead of any throttled snapshot; 0.0 when unknown."""
        return self.cache.get(symbol)

    def subscribe_to_price_updates(self, listener: PriceListener) -> Unsubscribe:
        """Listen for the full price map after each ticker flush."""
        return self.cache.subscribe(listener)

    def get_coins_snapshot(self) -> list[Coin]:
        return self._ticker.get_coins_snapshot() if self._ticker is not None else []

    @property
    def ticker(self) -> TickerProjection | None:
        return self._ticker

    # ──────────────────────────────────────────────
    # Per-symbol feeds
    # ──────────────────────────────────────────────

    def watch_order_book(self, symbol: str, depth: int | None = None) -> OrderBookProjection:
        projection = self._order_books.get(symbol)
        if projection is None:
            projection = OrderBookProjection(
                symbol, self._stream_settings, self._throttle_settings, depth, self._connect
            )
            projection.start()
            self._order_books[symbol] = projection
            logger.info("order_book_watched", symbol=symbol, depth=projection.depth)
        return projection

    async def unwatch_order_book(self, symbol: str) -> None:
        projection = self._order_books.pop(symbol, None)
        if projection is not None:
            await projection.close()

    def get_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        projection = self._order_books.get(symbol)
        return projection.get_snapshot() if projection is not None else OrderBookSnapshot()

    def watch_trades(self, symbol: str) -> RecentTradesProjection:
        projection = self._trades.get(symbol)
        if projection is None:
            projection = RecentTradesProjection(
                symbol, self._stream_settings, self._throttle_settings, self._connect
            )
            projection.start()
            self._trades[symbol] = projection
            logger.info("trades_watched", symbol=symbol)
        return projection

    async def unwatch_trades(self, symbol: str) -> None:
        projection = self._trades.pop(symbol, None)
        if projection is not None:
            await projection.close()

    def get_recent_trades(self, symbol: str) -> list[Trade]:
        projection = self._trades.get(symbol)
        return projection.get_trades() if projection is not None else []

    async def watch_klines(self, symbol: str, interval: str | None = None) -> KlineProjection:
        interval = interval or self._stream_settings.kline_interval
        key = (symbol, interval)
        projection = self._klines.get(key)
        if projection is None:
            projection = KlineProjection(
                self._client,
                symbol,
                interval,
                self._stream_settings,
                self._throttle_settings,
                connect=self._connect,
            )
            self._klines[key] = projection
            await projection.start()
            logger.info("klines_watched", symbol=symbol, interval=interval)
        return projection

    async def unwatch_klines(self, symbol: str, interval: str | None = None) -> None:
        interval = interval or self._stream_settings.kline_interval
        projection = self._klines.pop((symbol, interval), None)
        if projection is not None:
            await projection.close()

    def get_klines(self, symbol: str, interval: str | None = None) -> list[Kline]:
        interval = interval or self._stream_settings.kline_interval
        projection = self._klines.get((symbol, interval))
        return projection.get_klines() if projection is not None else []

    def feed_status(self) -> dict[str, dict[str, Any]]:
        """Connection state for every open feed, keyed by feed name."""
        status: dict[str, dict[str, Any]] = {}
        if self._ticker is not None:
            status["ticker"] = {"connected": self._ticker.connected, "error": self._ticker.error}
        for symbol, book in self._order_books.items():
            status[f"depth:{symbol}"] = {"connected": book.connected, "error": book.error}
        for symbol, trades in self._trades.items():
            status[f"trades:{symbol}"] = {"connected": trades.connected, "error": trades.error}
        for (symbol, interval), klines in self._klines.items():
            status[f"kline:{symbol}:{interval}"] = {
                "connected": klines.connected,
                "error": klines.error,
            }
        return status

    async def close(self) -> None:
        """Tear down every projection and its socket."""
        if self._ticker is not None:
            await self._ticker.close()
            self._ticker = None
        for symbol in list(self._order_books):
            await self.unwatch_order_book(symbol)
        for symbol in list(self._trades):
            await self.unwatch_trades(symbol)
        for symbol, interval in list(self._klines):
            await self.unwatch_klines(symbol, interval)
        logger.info("market_data_closed")

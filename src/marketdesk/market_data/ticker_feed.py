"""Throttled projection of the all-symbols ticker stream.

Loads the full ticker universe over REST, then follows the shared
``!ticker@arr`` stream. Every streamed price goes straight into the
SharedPriceCache; the coin list itself is only rebuilt once per flush period
(1s by default) from a pending map where the last message per symbol wins.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import websockets

from marketdesk.config import PriceChangePeriod, StreamSettings, ThrottleSettings
from marketdesk.exchange.client import ExchangeClient
from marketdesk.exchange.parsers import base_symbol, parse_ticker_message
from marketdesk.exchange.stream import StreamConnection, ticker_stream_url
from marketdesk.logging import get_logger
from marketdesk.market_data.price_cache import SharedPriceCache
from marketdesk.market_data.throttle import TrailingThrottle
from marketdesk.models import Coin, TickerUpdate, now_ms

logger = get_logger(__name__)

#: Candle interval and count used to measure change over each display period.
PERIOD_KLINE_PARAMS: dict[str, tuple[str, int]] = {
    "5m": ("1m", 5),
    "15m": ("5m", 3),
    "30m": ("5m", 6),
    "1h": ("15m", 4),
    "4h": ("1h", 4),
    "24h": ("4h", 6),
}


async def fetch_period_change_percent(
    client: ExchangeClient,
    symbol: str,
    period: PriceChangePeriod,
    quote_asset: str = "USDT",
) -> float:
    """Percent change from the first candle's open to the last candle's close.

    Returns 0.0 when the fetch fails, fewer than two candles come back, or
    the opening price is zero.
    """
    interval, limit = PERIOD_KLINE_PARAMS.get(period, ("1h", 4))
    try:
        candles = await client.fetch_ohlcv(f"{symbol}/{quote_asset}", interval, limit=limit)
    except Exception:
        logger.warning("period_change_fetch_failed", symbol=symbol, period=period, exc_info=True)
        return 0.0
    if len(candles) < 2:
        return 0.0
    open_price = float(candles[0][1])
    close_price = float(candles[-1][4])
    if open_price == 0:
        return 0.0
    return (close_price - open_price) / open_price * 100


def coin_from_ticker(ccxt_symbol: str, ticker: dict, quote_asset: str) -> Coin | None:
    """Build a Coin from a ccxt unified ticker; None for other quote assets."""
    base, _, quote = ccxt_symbol.partition("/")
    if quote.split(":")[0] != quote_asset or not base:
        return None
    return Coin(
        symbol=base,
        name=base,
        price=float(ticker.get("last") or 0),
        price_change=float(ticker.get("change") or 0),
        price_change_percent=float(ticker.get("percentage") or 0),
        volume=float(ticker.get("baseVolume") or 0),
        high=float(ticker.get("high") or 0),
        low=float(ticker.get("low") or 0),
        last_update=int(ticker.get("timestamp") or now_ms()),
    )


class TickerProjection:
    """Coin list fed by a REST snapshot and the shared ticker stream."""

    def __init__(
        self,
        client: ExchangeClient,
        cache: SharedPriceCache,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        period: PriceChangePeriod | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._client = client
        self._cache = cache
        self._stream_settings = stream_settings
        self._quote = stream_settings.quote_asset
        self._period: PriceChangePeriod = period or stream_settings.price_change_period
        self._connect = connect
        self._coins: list[Coin] = []
        self._index: dict[str, int] = {}
        self._pending: dict[str, TickerUpdate] = {}
        self._throttle = TrailingThrottle(throttle_settings.ticker_interval, self.flush, "ticker")
        self._connection: StreamConnection[list[TickerUpdate]] | None = None
        self._snapshot_error: str | None = None
        self._closed = False
        self.loading = True
        self.flush_count = 0

    @property
    def period(self) -> PriceChangePeriod:
        return self._period

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    @property
    def error(self) -> str | None:
        """Snapshot failure or stream loss, whichever happened; None when healthy."""
        if self._snapshot_error is not None:
            return self._snapshot_error
        return self._connection.error if self._connection is not None else None

    async def start(self) -> None:
        """Load the REST snapshot, then open the shared ticker stream."""
        await self.load_snapshot()
        if self._closed:
            return
        self._connection = StreamConnection(
            ticker_stream_url(self._stream_settings.ws_url),
            lambda frame: parse_ticker_message(frame, self._quote),
            self.on_ticker,
            name="ticker",
            open_timeout=self._stream_settings.open_timeout,
            connect=self._connect,
        )
        self._connection.start()
        logger.info("ticker_projection_started", coins=len(self._coins), period=self._period)

    async def load_snapshot(self) -> None:
        """Fetch every ticker, keep quote-asset pairs sorted by volume, seed the price cache."""
        self.loading = True
        try:
            tickers = await self._client.fetch_tickers()
        except Exception:
            logger.warning("ticker_snapshot_failed", exc_info=True)
            self._snapshot_error = "Failed to fetch ticker data"
            self.loading = False
            return

        coins = [
            coin
            for symbol, ticker in tickers.items()
            if (coin := coin_from_ticker(symbol, ticker, self._quote)) is not None
        ]
        coins.sort(key=lambda c: c.volume, reverse=True)
        self._cache.update_many({c.symbol: c.price for c in coins})

        if self._period != "24h":
            coins = await self._with_period_changes(coins)

        if self._closed:
            return
        self._snapshot_error = None
        self._set_coins(coins)
        self.loading = False
        self._cache.notify()
        logger.info("ticker_snapshot_loaded", coins=len(coins))

    async def _with_period_changes(self, coins: list[Coin]) -> list[Coin]:
        percents = await asyncio.gather(
            *(
                fetch_period_change_percent(self._client, c.symbol, self._period, self._quote)
                for c in coins
            )
        )
        return [
            replace(c, price_change_percent=pct, price_change=c.price * pct / 100)
            for c, pct in zip(coins, percents)
        ]

    def _set_coins(self, coins: list[Coin]) -> None:
        self._coins = coins
        self._index = {c.symbol: i for i, c in enumerate(coins)}

    def on_ticker(self, updates: list[TickerUpdate]) -> None:
        """Stream callback: write the cache now, coalesce the rest until the next flush."""
        if self._closed or not updates:
            return
        for update in updates:
            symbol = base_symbol(update.pair, self._quote)
            self._pending[symbol] = update
            self._cache.set(symbol, update.last_price)
        self._throttle.trigger()

    def flush(self) -> None:
        """Apply pending updates to the coin list and notify cache listeners once."""
        if self._closed or not self._pending:
            return
        updates = self._pending
        self._pending = {}
        self.flush_count += 1

        changed = False
        for symbol, update in updates.items():
            idx = self._index.get(symbol)
            if idx is None:
                continue
            coin = self._coins[idx]
            if self._period == "24h":
                change, change_pct = update.price_change, update.price_change_percent
            else:
                change, change_pct = coin.price_change, coin.price_change_percent
            self._coins[idx] = replace(
                coin,
                price=update.last_price,
                price_change=change,
                price_change_percent=change_pct,
                high=update.high,
                low=update.low,
                volume=update.volume,
                last_update=now_ms(),
            )
            changed = True

        if changed:
            self._cache.notify()

    def get_coins_snapshot(self) -> list[Coin]:
        """Coins as of the last flush, highest snapshot volume first."""
        return list(self._coins)

    def get_coin(self, symbol: str) -> Coin | None:
        idx = self._index.get(symbol)
        return self._coins[idx] if idx is not None else None

    async def close(self) -> None:
        """Cancel the pending flush, then close the stream."""
        self._closed = True
        self._throttle.cancel()
        self._pending.clear()
        if self._connection is not None:
            await self._connection.close()
        logger.info("ticker_projection_closed")

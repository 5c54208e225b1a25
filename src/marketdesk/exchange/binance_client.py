"""Binance REST snapshot client via ccxt async.

Wraps ccxt.async_support.binance (or any ccxt exchange id from
StreamSettings) for the initial ticker universe and candle history.
"""

import ccxt.async_support as ccxt_async

from marketdesk.config import StreamSettings
from marketdesk.exchange.client import ExchangeClient
from marketdesk.logging import get_logger

logger = get_logger(__name__)


class BinanceClient(ExchangeClient):
    """Public-endpoint ccxt client; no API keys are needed for market data."""

    def __init__(self, settings: StreamSettings) -> None:
        self._settings = settings
        exchange_cls = getattr(ccxt_async, settings.exchange_id)
        self._exchange = exchange_cls(
            {
                "enableRateLimit": True,
                "options": {"defaultType": "spot"},
            }
        )
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Load markets so later symbol lookups are local."""
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        self._markets = await self._exchange.load_markets()
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_exchange_connection")
        await self._exchange.close()
        logger.info("exchange_connection_closed")

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict:
        """Fetch unified 24h tickers for all (or the given) symbols."""
        return await self._exchange.fetch_tickers(symbols)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1h",
        since: int | None = None,
        limit: int = 500,
    ) -> list[list]:
        """Fetch OHLCV candles via ccxt."""
        return await self._exchange.fetch_ohlcv(symbol, timeframe, since=since, limit=limit)

    def timeframe_ms(self, timeframe: str) -> int:
        """Convert a ccxt timeframe string ("5m", "1h") to milliseconds."""
        return int(self._exchange.parse_timeframe(timeframe) * 1000)

    def get_markets(self) -> dict:
        """Return the markets dict cached at connect() time."""
        return self._markets

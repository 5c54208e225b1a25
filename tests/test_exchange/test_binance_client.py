"""Tests for BinanceClient.

The ccxt exchange object is real for init checks and replaced with mocks
for every network call.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from marketdesk.config import StreamSettings
from marketdesk.exchange.binance_client import BinanceClient

MOCK_MARKETS = {
    "BTC/USDT": {"id": "BTCUSDT", "symbol": "BTC/USDT", "base": "BTC", "quote": "USDT", "spot": True},
    "ETH/USDT": {"id": "ETHUSDT", "symbol": "ETH/USDT", "base": "ETH", "quote": "USDT", "spot": True},
}


@pytest.fixture
def binance_client() -> BinanceClient:
    """BinanceClient with the ccxt exchange swapped for a mock."""
    client = BinanceClient(StreamSettings())
    exchange = MagicMock()
    exchange.load_markets = AsyncMock(return_value=MOCK_MARKETS)
    exchange.fetch_tickers = AsyncMock(return_value={"BTC/USDT": {"last": 1.0}})
    exchange.fetch_ohlcv = AsyncMock(return_value=[[0, 1, 2, 0.5, 1.5, 10]])
    exchange.close = AsyncMock()
    exchange.parse_timeframe = MagicMock(return_value=3600)
    client._exchange = exchange
    return client


class TestBinanceClientInit:
    """Tests for BinanceClient initialization."""

    def test_rate_limit_and_spot(self) -> None:
        client = BinanceClient(StreamSettings())
        assert client.exchange.enableRateLimit is True
        assert client.exchange.options["defaultType"] == "spot"


class TestBinanceClientCalls:
    """Pass-through calls to ccxt."""

    @pytest.mark.asyncio
    async def test_connect_caches_markets(self, binance_client: BinanceClient) -> None:
        await binance_client.connect()
        assert set(binance_client.get_markets()) == {"BTC/USDT", "ETH/USDT"}

    @pytest.mark.asyncio
    async def test_fetch_ohlcv_forwards_arguments(self, binance_client: BinanceClient) -> None:
        rows = await binance_client.fetch_ohlcv("BTC/USDT", "4h", limit=6)
        assert rows == [[0, 1, 2, 0.5, 1.5, 10]]
        binance_client.exchange.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT", "4h", since=None, limit=6
        )

    @pytest.mark.asyncio
    async def test_fetch_tickers(self, binance_client: BinanceClient) -> None:
        tickers = await binance_client.fetch_tickers()
        assert tickers["BTC/USDT"]["last"] == 1.0

    def test_timeframe_ms(self, binance_client: BinanceClient) -> None:
        assert binance_client.timeframe_ms("1h") == 3_600_000

    @pytest.mark.asyncio
    async def test_close(self, binance_client: BinanceClient) -> None:
        await binance_client.close()
        binance_client.exchange.close.assert_awaited_once()

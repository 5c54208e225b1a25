"""Abstract REST snapshot client.

Streaming goes through StreamConnection; this interface covers only the
request/response calls made before a stream starts (full ticker universe,
candle history). Projections depend on it rather than on ccxt directly.
"""

from abc import ABC, abstractmethod


class ExchangeClient(ABC):
    """Abstract base class for REST market data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the session and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the HTTP session (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict:
        """Fetch unified 24h tickers keyed by ccxt symbol ("BTC/USDT")."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1h",
        since: int | None = None,
        limit: int = 500,
    ) -> list[list]:
        """Fetch candles as [timestamp_ms, open, high, low, close, volume] rows, oldest first."""
        ...

    @abstractmethod
    def timeframe_ms(self, timeframe: str) -> int:
        """Duration of one candle of ``timeframe`` in milliseconds."""
        ...

"""Candle projection for one (symbol, interval).

Closed candles are applied as soon as they arrive. The in-progress candle
updates many times a second, so only the latest one is kept and it is
applied on a 500ms trailing flush.
"""

from collections.abc import Callable
from typing import Any

import websockets

from marketdesk.config import StreamSettings, ThrottleSettings
from marketdesk.exchange.client import ExchangeClient
from marketdesk.exchange.parsers import parse_kline_message
from marketdesk.exchange.stream import StreamConnection, kline_stream_url
from marketdesk.logging import get_logger
from marketdesk.market_data.throttle import TrailingThrottle
from marketdesk.models import Kline

logger = get_logger(__name__)


def kline_from_ohlcv(row: list, interval_ms: int) -> Kline:
    """Convert a ccxt OHLCV row into a closed Kline."""
    open_time = int(row[0])
    return Kline(
        open_time=open_time,
        open=str(row[1]),
        high=str(row[2]),
        low=str(row[3]),
        close=str(row[4]),
        volume=str(row[5]),
        close_time=open_time + interval_ms - 1,
        is_final=True,
    )


def merge_closed_candle(klines: list[Kline], candle: Kline) -> list[Kline]:
    """Replace any candle with the same open time, keep the list sorted by open time."""
    merged = [k for k in klines if k.open_time != candle.open_time]
    merged.append(candle)
    merged.sort(key=lambda k: k.open_time)
    return merged


def merge_live_candle(klines: list[Kline], candle: Kline) -> list[Kline]:
    """Overwrite the last candle if it is the same period, otherwise append."""
    if klines and klines[-1].open_time == candle.open_time:
        return [*klines[:-1], candle]
    return [*klines, candle]


class KlineProjection:
    """REST candle history followed by the ``@kline_<interval>`` stream."""

    def __init__(
        self,
        client: ExchangeClient,
        symbol: str,
        interval: str,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        limit: int | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._client = client
        self.symbol = symbol
        self.interval = interval
        self._stream_settings = stream_settings
        self._limit = limit or stream_settings.kline_limit
        self._connect = connect
        self._klines: list[Kline] = []
        self._pending_live: Kline | None = None
        self._throttle = TrailingThrottle(
            throttle_settings.kline_interval, self.flush_live, f"kline:{symbol}:{interval}"
        )
        self._connection: StreamConnection[Kline] | None = None
        self._closed = False
        self.loading = True

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    @property
    def error(self) -> str | None:
        return self._connection.error if self._connection is not None else None

    async def start(self) -> None:
        await self.load_history()
        if self._closed:
            return
        quote = self._stream_settings.quote_asset
        self._connection = StreamConnection(
            kline_stream_url(self._stream_settings.ws_url, self.symbol, self.interval, quote),
            parse_kline_message,
            self.on_kline,
            name=f"kline:{self.symbol}:{self.interval}",
            open_timeout=self._stream_settings.open_timeout,
            connect=self._connect,
        )
        self._connection.start()

    async def load_history(self) -> None:
        quote = self._stream_settings.quote_asset
        try:
            rows = await self._client.fetch_ohlcv(
                f"{self.symbol}/{quote}", self.interval, limit=self._limit
            )
            interval_ms = self._client.timeframe_ms(self.interval)
        except Exception:
            logger.warning(
                "kline_history_failed", symbol=self.symbol, interval=self.interval, exc_info=True
            )
            self.loading = False
            return
        if self._closed:
            return
        self._klines = [kline_from_ohlcv(row, interval_ms) for row in rows]
        self.loading = False

    def on_kline(self, candle: Kline) -> None:
        if self._closed:
            return
        if candle.is_final:
            self._throttle.cancel()
            self._pending_live = None
            self._klines = merge_closed_candle(self._klines, candle)
        else:
            self._pending_live = candle
            self._throttle.trigger()

    def flush_live(self) -> None:
        if self._closed or self._pending_live is None:
            return
        candle = self._pending_live
        self._pending_live = None
        self._klines = merge_live_candle(self._klines, candle)

    def get_klines(self) -> list[Kline]:
        return list(self._klines)

    async def close(self) -> None:
        self._closed = True
        self._throttle.cancel()
        self._pending_live = None
        if self._connection is not None:
            await self._connection.close()

"""Recent-trades projection for one symbol: batched every 250ms, capped at 50."""

from collections.abc import Callable
from typing import Any

import websockets

from marketdesk.config import StreamSettings, ThrottleSettings
from marketdesk.exchange.parsers import parse_trade_message
from marketdesk.exchange.stream import StreamConnection, trade_stream_url
from marketdesk.market_data.throttle import TrailingThrottle
from marketdesk.models import Trade


class RecentTradesProjection:
    """Append trades in arrival order; each flush prepends the batch newest-first."""

    def __init__(
        self,
        symbol: str,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.symbol = symbol
        self._stream_settings = stream_settings
        self._cap = throttle_settings.recent_trades_cap
        self._connect = connect
        self._pending: list[Trade] = []
        self._trades: list[Trade] = []
        self._throttle = TrailingThrottle(
            throttle_settings.trade_interval, self.flush, f"trades:{symbol}"
        )
        self._connection: StreamConnection[Trade] | None = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    @property
    def error(self) -> str | None:
        return self._connection.error if self._connection is not None else None

    def start(self) -> None:
        quote = self._stream_settings.quote_asset
        self._connection = StreamConnection(
            trade_stream_url(self._stream_settings.ws_url, self.symbol, quote),
            lambda frame: parse_trade_message(frame, self.symbol, quote),
            self.on_trade,
            name=f"trades:{self.symbol}",
            open_timeout=self._stream_settings.open_timeout,
            connect=self._connect,
        )
        self._connection.start()

    def on_trade(self, trade: Trade) -> None:
        if self._closed:
            return
        self._pending.append(trade)
        self._throttle.trigger()

    def flush(self) -> None:
        if self._closed or not self._pending:
            return
        batch = self._pending
        self._pending = []
        # Pending is oldest-first; the displayed list is newest-first.
        self._trades = (batch[::-1] + self._trades)[: self._cap]

    def get_trades(self) -> list[Trade]:
        return list(self._trades)

    async def close(self) -> None:
        self._closed = True
        self._throttle.cancel()
        self._pending.clear()
        if self._connection is not None:
            await self._connection.close()

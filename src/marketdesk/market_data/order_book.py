"""Throttled order-book projection for one symbol.

Depth messages are not merged: the latest message replaces the pending one
outright, and a flush (every 250ms by default) turns it into display levels
with running quote totals.
"""

from collections.abc import Callable
from typing import Any

import websockets

from marketdesk.config import StreamSettings, ThrottleSettings
from marketdesk.exchange.parsers import parse_depth_message
from marketdesk.exchange.stream import StreamConnection, depth_stream_url
from marketdesk.logging import get_logger
from marketdesk.market_data.throttle import TrailingThrottle
from marketdesk.models import DepthUpdate, OrderBookEntry, OrderBookSnapshot

logger = get_logger(__name__)


def cumulative_levels(levels: list[list[str]], depth: int) -> list[OrderBookEntry]:
    """Convert the first ``depth`` [price, qty] levels to entries with running totals.

    total[i] = total[i-1] + amount[i] * price[i], accumulated in input order.
    """
    entries: list[OrderBookEntry] = []
    total = 0.0
    for price_raw, amount_raw, *_ in levels[:depth]:
        price = float(price_raw)
        amount = float(amount_raw)
        total += amount * price
        entries.append(OrderBookEntry(price=price, amount=amount, total=total))
    return entries


def build_snapshot(update: DepthUpdate, depth: int) -> OrderBookSnapshot:
    """Bids keep their order; asks are totalled in exchange order, then reversed for display."""
    asks = cumulative_levels(update.asks, depth)
    asks.reverse()
    return OrderBookSnapshot(bids=cumulative_levels(update.bids, depth), asks=asks)


class OrderBookProjection:
    """Last-message-wins depth buffer with a 250ms trailing flush."""

    def __init__(
        self,
        symbol: str,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        depth: int | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.symbol = symbol
        self._stream_settings = stream_settings
        self._depth = depth or stream_settings.default_depth
        self._connect = connect
        self._pending: DepthUpdate | None = None
        self._snapshot = OrderBookSnapshot()
        self._throttle = TrailingThrottle(
            throttle_settings.depth_interval, self.flush, f"depth:{symbol}"
        )
        self._connection: StreamConnection[DepthUpdate] | None = None
        self._closed = False

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    @property
    def error(self) -> str | None:
        return self._connection.error if self._connection is not None else None

    def start(self) -> None:
        self._connection = StreamConnection(
            depth_stream_url(self._stream_settings.ws_url, self.symbol, self._stream_settings.quote_asset),
            parse_depth_message,
            self.on_depth,
            name=f"depth:{self.symbol}",
            open_timeout=self._stream_settings.open_timeout,
            connect=self._connect,
        )
        self._connection.start()

    def on_depth(self, update: DepthUpdate) -> None:
        if self._closed:
            return
        self._pending = update
        self._throttle.trigger()

    def flush(self) -> None:
        if self._closed or self._pending is None:
            return
        update = self._pending
        self._pending = None
        try:
            self._snapshot = build_snapshot(update, self._depth)
        except (TypeError, ValueError):
            logger.debug("depth_levels_malformed", symbol=self.symbol)

    def get_snapshot(self) -> OrderBookSnapshot:
        return self._snapshot

    async def close(self) -> None:
        self._closed = True
        self._throttle.cancel()
        self._pending = None
        if self._connection is not None:
            await self._connection.close()

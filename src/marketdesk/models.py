"""Shared market data models.

Prices are float: these feed UI projections and regression math, not order
execution, so exact decimal arithmetic buys nothing here.
"""

import time
from dataclasses import dataclass, field


def now_ms() -> int:
    """Current wall-clock time in Unix milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PriceSample:
    """A single observed price and the moment it was recorded."""

    price: float
    timestamp: int  # Unix milliseconds


@dataclass
class Coin:
    """One row of the throttled ticker projection."""

    symbol: str  # base asset, e.g. "BTC"
    name: str
    price: float
    price_change: float = 0.0
    price_change_percent: float = 0.0
    volume: float = 0.0
    high: float = 0.0
    low: float = 0.0
    last_update: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class TickerUpdate:
    """Parsed entry of the all-symbols ticker stream."""

    pair: str  # exchange pair, e.g. "BTCUSDT"
    last_price: float
    price_change: float
    price_change_percent: float
    high: float
    low: float
    volume: float


@dataclass
class Kline:
    """A single OHLCV candle; price fields keep the exchange's string form."""

    open_time: int
    open: str
    high: str
    low: str
    close: str
    volume: str
    close_time: int = 0
    quote_volume: str = "0"
    trades: int = 0
    taker_buy_base_volume: str = "0"
    taker_buy_quote_volume: str = "0"
    is_final: bool = False


@dataclass(frozen=True)
class OrderBookEntry:
    """One displayed depth level with its cumulative quote total."""

    price: float
    amount: float
    total: float


@dataclass
class OrderBookSnapshot:
    """Flushed order book: bids best-first, asks highest-first."""

    bids: list[OrderBookEntry] = field(default_factory=list)
    asks: list[OrderBookEntry] = field(default_factory=list)


@dataclass(frozen=True)
class DepthUpdate:
    """Raw depth message levels as [price, quantity] string pairs."""

    bids: list[list[str]]
    asks: list[list[str]]


@dataclass(frozen=True)
class Trade:
    """A single public trade."""

    id: str
    symbol: str
    price: float
    amount: float
    time: int
    is_buyer_maker: bool = False

"""Exchange layer -- websocket stream transport, wire parsers and REST snapshots via ccxt."""

from marketdesk.exchange.binance_client import BinanceClient
from marketdesk.exchange.client import ExchangeClient
from marketdesk.exchange.stream import (
    StreamConnection,
    depth_stream_url,
    kline_stream_url,
    ticker_stream_url,
    trade_stream_url,
)

__all__ = [
    "BinanceClient",
    "ExchangeClient",
    "StreamConnection",
    "depth_stream_url",
    "kline_stream_url",
    "ticker_stream_url",
    "trade_stream_url",
]

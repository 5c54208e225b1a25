"""Wire-format parsers for the Binance public streams.

Each parser takes the raw text frame and returns a canonical model, raising
FeedMessageError when the frame does not have the expected shape. Callers
(StreamConnection) are responsible for dropping failed frames.

Field names follow the exchange's single-letter keys:
    ticker  s=pair c=last p=change P=change% h=high l=low v=base volume
    kline   k={t o h l c v T q n V Q x}
    depth   b=[[price, qty]] a=[[price, qty]]
    trade   t=id s=pair p=price q=qty T=time m=buyer-is-maker
"""

import json
from typing import Any

from marketdesk.exceptions import FeedMessageError
from marketdesk.models import DepthUpdate, Kline, TickerUpdate, Trade, now_ms


def base_symbol(pair: str, quote_asset: str = "USDT") -> str:
    """Strip the quote suffix from an exchange pair ("BTCUSDT" -> "BTC")."""
    return pair.removesuffix(quote_asset)


def stream_symbol(symbol: str, quote_asset: str = "USDT") -> str:
    """Stream path component for a base asset ("BTC" -> "btcusdt")."""
    return f"{symbol}{quote_asset}".lower()


def _load(raw: str | bytes) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise FeedMessageError(f"invalid JSON frame: {exc}") from exc


def _float(payload: dict, key: str) -> float:
    try:
        return float(payload[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise FeedMessageError(f"field {key!r} missing or not numeric") from exc


def parse_ticker_message(raw: str | bytes, quote_asset: str = "USDT") -> list[TickerUpdate]:
    """Parse an all-symbols ticker frame into updates for ``quote_asset`` pairs.

    Accepts the bare array form and the combined-stream ``{"data": {...}}``
    envelope. Entries for other quote assets are skipped; an entry with
    non-numeric fields is skipped without failing the rest of the batch.
    """
    data = _load(raw)
    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("data"), dict):
        entries = [data["data"]]
    else:
        raise FeedMessageError("ticker frame is neither an array nor a data envelope")

    updates: list[TickerUpdate] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        pair = entry.get("s")
        if not isinstance(pair, str) or not pair.endswith(quote_asset):
            continue
        try:
            updates.append(
                TickerUpdate(
                    pair=pair,
                    last_price=_float(entry, "c"),
                    price_change=_float(entry, "p"),
                    price_change_percent=_float(entry, "P"),
                    high=_float(entry, "h"),
                    low=_float(entry, "l"),
                    volume=_float(entry, "v"),
                )
            )
        except FeedMessageError:
            continue
    return updates


def parse_kline_message(raw: str | bytes) -> Kline:
    """Parse a kline frame; ``is_final`` mirrors the exchange's closed-candle flag."""
    data = _load(raw)
    k = data.get("k") if isinstance(data, dict) else None
    if not isinstance(k, dict):
        raise FeedMessageError("kline frame has no 'k' payload")
    try:
        return Kline(
            open_time=int(k["t"]),
            open=str(k["o"]),
            high=str(k["h"]),
            low=str(k["l"]),
            close=str(k["c"]),
            volume=str(k["v"]),
            close_time=int(k.get("T", 0)),
            quote_volume=str(k.get("q", "0")),
            trades=int(k.get("n", 0)),
            taker_buy_base_volume=str(k.get("V", "0")),
            taker_buy_quote_volume=str(k.get("Q", "0")),
            is_final=bool(k.get("x", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise FeedMessageError(f"malformed kline payload: {exc}") from exc


def parse_depth_message(raw: str | bytes) -> DepthUpdate:
    """Parse a depth frame; both sides must be present, levels stay as strings."""
    data = _load(raw)
    if not isinstance(data, dict):
        raise FeedMessageError("depth frame is not an object")
    bids, asks = data.get("b"), data.get("a")
    if not isinstance(bids, list) or not isinstance(asks, list):
        raise FeedMessageError("depth frame is missing 'b' or 'a'")
    return DepthUpdate(bids=bids, asks=asks)


def parse_trade_message(
    raw: str | bytes, fallback_symbol: str, quote_asset: str = "USDT"
) -> Trade:
    """Parse a trade frame; id and time fall back to "now" when the exchange omits them."""
    data = _load(raw)
    if not isinstance(data, dict):
        raise FeedMessageError("trade frame is not an object")
    received = now_ms()
    trade_id = data.get("t")
    pair = data.get("s")
    try:
        trade_time = int(data.get("T") or received)
    except (TypeError, ValueError) as exc:
        raise FeedMessageError(f"malformed trade time: {exc}") from exc
    return Trade(
        id=str(trade_id) if trade_id is not None else str(received),
        symbol=base_symbol(pair, quote_asset) if isinstance(pair, str) else fallback_symbol,
        price=_float(data, "p"),
        amount=_float(data, "q"),
        time=trade_time,
        is_buyer_maker=bool(data.get("m", False)),
    )

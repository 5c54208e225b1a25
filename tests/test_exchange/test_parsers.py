"""Tests for the stream frame parsers."""

import json

import pytest

from marketdesk.exceptions import FeedMessageError
from marketdesk.exchange.parsers import (
    base_symbol,
    parse_depth_message,
    parse_kline_message,
    parse_ticker_message,
    parse_trade_message,
    stream_symbol,
)

TICKER_ENTRY = {"s": "BTCUSDT", "c": "50000.1", "p": "100", "P": "0.2", "h": "51000", "l": "49000", "v": "123.4"}


class TestSymbols:
    """Pair / stream name helpers."""

    def test_base_symbol(self) -> None:
        assert base_symbol("BTCUSDT") == "BTC"
        assert base_symbol("ETHBTC", "BTC") == "ETH"

    def test_stream_symbol(self) -> None:
        assert stream_symbol("BTC") == "btcusdt"


class TestParseTicker:
    """Tests for parse_ticker_message."""

    def test_array_form(self) -> None:
        updates = parse_ticker_message(json.dumps([TICKER_ENTRY]))
        assert len(updates) == 1
        assert updates[0].pair == "BTCUSDT"
        assert updates[0].last_price == 50000.1
        assert updates[0].volume == 123.4

    def test_data_envelope(self) -> None:
        updates = parse_ticker_message(json.dumps({"stream": "x", "data": TICKER_ENTRY}))
        assert [u.pair for u in updates] == ["BTCUSDT"]

    def test_skips_other_quotes_and_bad_entries(self) -> None:
        frame = [TICKER_ENTRY, {**TICKER_ENTRY, "s": "ETHBTC"}, {**TICKER_ENTRY, "s": "XUSDT", "c": "n/a"}, 5]
        updates = parse_ticker_message(json.dumps(frame))
        assert [u.pair for u in updates] == ["BTCUSDT"]

    @pytest.mark.parametrize("raw", ["not json", json.dumps({"foo": 1}), json.dumps(3)])
    def test_malformed_frame_raises(self, raw: str) -> None:
        with pytest.raises(FeedMessageError):
            parse_ticker_message(raw)


class TestParseKline:
    """Tests for parse_kline_message."""

    def test_full_payload(self) -> None:
        raw = json.dumps({"k": {"t": 1, "o": "1", "h": "2", "l": "0.5", "c": "1.5", "v": "10",
                                "T": 59999, "q": "15", "n": 7, "V": "4", "Q": "6", "x": True}})
        kline = parse_kline_message(raw)
        assert kline.open_time == 1
        assert kline.close == "1.5"
        assert kline.trades == 7
        assert kline.is_final is True

    def test_missing_payload_raises(self) -> None:
        with pytest.raises(FeedMessageError):
            parse_kline_message(json.dumps({"e": "kline"}))

    def test_missing_field_raises(self) -> None:
        with pytest.raises(FeedMessageError):
            parse_kline_message(json.dumps({"k": {"t": 1}}))


class TestParseDepth:
    """Tests for parse_depth_message."""

    def test_levels_kept_as_strings(self) -> None:
        update = parse_depth_message(json.dumps({"b": [["100", "1"]], "a": [["101", "2"]]}))
        assert update.bids == [["100", "1"]]
        assert update.asks == [["101", "2"]]

    def test_missing_side_raises(self) -> None:
        with pytest.raises(FeedMessageError):
            parse_depth_message(json.dumps({"b": []}))


class TestParseTrade:
    """Tests for parse_trade_message."""

    def test_full_trade(self) -> None:
        raw = json.dumps({"t": 42, "s": "BTCUSDT", "p": "50000", "q": "0.1", "T": 1700, "m": True})
        trade = parse_trade_message(raw, "BTC")
        assert trade.id == "42"
        assert trade.symbol == "BTC"
        assert trade.price == 50000.0
        assert trade.time == 1700
        assert trade.is_buyer_maker is True

    def test_missing_id_and_time_fall_back_to_now(self) -> None:
        trade = parse_trade_message(json.dumps({"p": "1", "q": "2"}), "ETH")
        assert trade.symbol == "ETH"
        assert trade.time > 0
        assert trade.id == str(trade.time)

    def test_missing_price_raises(self) -> None:
        with pytest.raises(FeedMessageError):
            parse_trade_message(json.dumps({"q": "2"}), "ETH")

    def test_non_numeric_time_raises(self) -> None:
        with pytest.raises(FeedMessageError):
            parse_trade_message(json.dumps({"p": "1", "q": "2", "T": "abc"}), "ETH")

"""Tests for StreamConnection with a fake websocket connect."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest

from marketdesk.exchange.parsers import parse_depth_message, parse_trade_message
from marketdesk.exchange.stream import (
    StreamConnection,
    depth_stream_url,
    kline_stream_url,
    ticker_stream_url,
    trade_stream_url,
)
from marketdesk.models import DepthUpdate, Trade

WS = "wss://example.test/ws"


class TestStreamUrls:
    """Stream path construction."""

    def test_urls(self) -> None:
        assert ticker_stream_url(WS) == f"{WS}/!ticker@arr"
        assert kline_stream_url(WS, "BTC", "1h") == f"{WS}/btcusdt@kline_1h"
        assert depth_stream_url(WS, "ETH") == f"{WS}/ethusdt@depth"
        assert trade_stream_url(WS, "SOL") == f"{WS}/solusdt@trade"


class TestStreamConnection:
    """Dispatch, dropped frames and connection state."""

    @pytest.mark.asyncio
    async def test_dispatches_parsed_frames_and_drops_bad_ones(self, fake_connect_factory) -> None:
        received: list[DepthUpdate] = []
        frames = [{"b": [], "a": []}, "garbage", {"b": [["1", "1"]], "a": []}]
        conn = StreamConnection(
            f"{WS}/btcusdt@depth",
            parse_depth_message,
            received.append,
            name="depth:BTC",
            connect=fake_connect_factory(frames, hold_open=True),
        )
        conn.start()
        await asyncio.sleep(0.02)
        assert conn.connected is True
        assert conn.error is None
        assert len(received) == 2
        assert conn.dropped_frames == 1
        await conn.close()
        assert conn.connected is False

    @pytest.mark.asyncio
    async def test_server_close_sets_error(self, fake_connect_factory) -> None:
        conn = StreamConnection(
            WS, parse_depth_message, lambda _: None, name="depth", connect=fake_connect_factory([])
        )
        conn.start()
        await asyncio.sleep(0.02)
        assert conn.connected is False
        assert conn.error == "connection closed by server"
        await conn.close()

    @pytest.mark.asyncio
    async def test_connect_failure_sets_error(self) -> None:
        @asynccontextmanager
        async def refusing_connect(url: str, **kwargs: Any):
            raise OSError("connection refused")
            yield  # pragma: no cover

        conn = StreamConnection(WS, parse_depth_message, lambda _: None, name="depth",
                                connect=refusing_connect)
        conn.start()
        await asyncio.sleep(0.02)
        assert conn.connected is False
        assert "connection refused" in (conn.error or "")
        await conn.close()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_kill_reader(self, fake_connect_factory) -> None:
        calls: list[int] = []

        def handler(_: DepthUpdate) -> None:
            calls.append(1)
            raise RuntimeError("consumer bug")

        frames = [{"b": [], "a": []}, {"b": [], "a": []}]
        conn = StreamConnection(WS, parse_depth_message, handler, name="depth",
                                connect=fake_connect_factory(frames, hold_open=True))
        conn.start()
        await asyncio.sleep(0.02)
        assert calls == [1, 1]
        assert conn.connected is True
        await conn.close()

    @pytest.mark.asyncio
    async def test_open_timeout_forwarded(self, fake_connect_factory) -> None:
        calls: list = []
        conn = StreamConnection(WS, parse_depth_message, lambda _: None, name="depth",
                                open_timeout=3.0, connect=fake_connect_factory([], calls=calls))
        conn.start()
        await asyncio.sleep(0.01)
        assert calls == [(WS, {"open_timeout": 3.0})]
        await conn.close()

    @pytest.mark.asyncio
    async def test_bad_trade_time_is_dropped_and_reader_survives(self, fake_connect_factory) -> None:
        received: list[Trade] = []
        frames = [
            {"t": 1, "p": "1", "q": "1", "T": "abc"},
            {"t": 2, "p": "2", "q": "1", "T": 5},
        ]
        conn = StreamConnection(
            f"{WS}/btcusdt@trade",
            lambda raw: parse_trade_message(raw, "BTC"),
            received.append,
            name="trades:BTC",
            connect=fake_connect_factory(frames, hold_open=True),
        )
        conn.start()
        await asyncio.sleep(0.02)
        assert [t.id for t in received] == ["2"]
        assert conn.dropped_frames == 1
        assert conn.connected is True
        await conn.close()

    @pytest.mark.asyncio
    async def test_unexpected_reader_error_is_recorded_and_close_succeeds(self) -> None:
        @asynccontextmanager
        async def broken_connect(url: str, **kwargs: Any):
            raise RuntimeError("socket exploded")
            yield  # pragma: no cover

        conn = StreamConnection(WS, parse_depth_message, lambda _: None, name="depth",
                                connect=broken_connect)
        conn.start()
        await asyncio.sleep(0.02)
        assert conn.connected is False
        assert "socket exploded" in (conn.error or "")
        await conn.close()

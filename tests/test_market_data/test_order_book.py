"""Tests for the throttled order-book projection."""

import asyncio

import pytest

from marketdesk.config import StreamSettings, ThrottleSettings
from marketdesk.market_data.order_book import (
    OrderBookProjection,
    build_snapshot,
    cumulative_levels,
)
from marketdesk.models import DepthUpdate, OrderBookEntry


class TestCumulativeLevels:
    """Running quote totals per side."""

    def test_bid_totals(self) -> None:
        entries = cumulative_levels([["100", "1"], ["99", "2"]], depth=20)
        assert entries == [
            OrderBookEntry(price=100.0, amount=1.0, total=100.0),
            OrderBookEntry(price=99.0, amount=2.0, total=298.0),
        ]

    def test_depth_limits_levels(self) -> None:
        levels = [[str(100 - i), "1"] for i in range(30)]
        assert len(cumulative_levels(levels, depth=5)) == 5


class TestBuildSnapshot:
    """Display ordering of the two sides."""

    def test_asks_reversed_after_totals(self) -> None:
        update = DepthUpdate(bids=[["100", "1"]], asks=[["101", "1"], ["102", "2"]])
        snapshot = build_snapshot(update, depth=20)
        assert [a.price for a in snapshot.asks] == [102.0, 101.0]
        # totals accumulate from the best ask outward, then the list is flipped
        assert snapshot.asks[-1].total == 101.0
        assert snapshot.asks[0].total == 101.0 + 204.0
        assert snapshot.bids[0].total == 100.0


class TestOrderBookProjection:
    """Last-message-wins buffering."""

    @pytest.mark.asyncio
    async def test_latest_depth_replaces_pending(
        self, stream_settings: StreamSettings, throttle_settings: ThrottleSettings
    ) -> None:
        book = OrderBookProjection("BTC", stream_settings, throttle_settings)
        book.on_depth(DepthUpdate(bids=[["1", "1"]], asks=[]))
        book.on_depth(DepthUpdate(bids=[["100", "1"], ["99", "2"]], asks=[]))
        assert book.get_snapshot().bids == []
        await asyncio.sleep(0.05)
        assert [b.total for b in book.get_snapshot().bids] == [100.0, 298.0]

    def test_malformed_levels_keep_previous_snapshot(
        self, stream_settings: StreamSettings, throttle_settings: ThrottleSettings
    ) -> None:
        book = OrderBookProjection("BTC", stream_settings, throttle_settings)
        book._pending = DepthUpdate(bids=[["abc", "1"]], asks=[])
        book.flush()
        assert book.get_snapshot().bids == []

    @pytest.mark.asyncio
    async def test_start_subscribes_to_depth_stream(
        self,
        stream_settings: StreamSettings,
        throttle_settings: ThrottleSettings,
        fake_connect_factory,
    ) -> None:
        calls: list = []
        frames = [{"b": [["100", "1"]], "a": [["101", "3"]]}]
        book = OrderBookProjection(
            "ETH",
            stream_settings,
            throttle_settings,
            depth=10,
            connect=fake_connect_factory(frames, hold_open=True, calls=calls),
        )
        book.start()
        await asyncio.sleep(0.06)
        assert calls[0][0] == "wss://example.test/ws/ethusdt@depth"
        assert book.get_snapshot().asks[0].total == 303.0
        await book.close()

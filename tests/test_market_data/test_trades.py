"""Tests for the recent-trades projection."""

import asyncio

import pytest

from marketdesk.config import StreamSettings, ThrottleSettings
from marketdesk.market_data.trades import RecentTradesProjection
from marketdesk.models import Trade


def _trade(n: int) -> Trade:
    return Trade(id=str(n), symbol="BTC", price=100.0 + n, amount=1.0, time=n)


class TestRecentTradesProjection:
    """Batching, ordering and the cap."""

    @pytest.mark.asyncio
    async def test_flush_is_newest_first(
        self, stream_settings: StreamSettings, throttle_settings: ThrottleSettings
    ) -> None:
        trades = RecentTradesProjection("BTC", stream_settings, throttle_settings)
        for n in range(3):
            trades.on_trade(_trade(n))
        assert trades.get_trades() == []
        await asyncio.sleep(0.05)
        assert [t.id for t in trades.get_trades()] == ["2", "1", "0"]

        trades.on_trade(_trade(3))
        await asyncio.sleep(0.05)
        assert [t.id for t in trades.get_trades()] == ["3", "2", "1", "0"]

    def test_capped_list(self, stream_settings: StreamSettings) -> None:
        settings = ThrottleSettings(trade_interval=10.0, recent_trades_cap=5)
        trades = RecentTradesProjection("BTC", stream_settings, settings)
        trades._pending = [_trade(n) for n in range(8)]
        trades.flush()
        assert [t.id for t in trades.get_trades()] == ["7", "6", "5", "4", "3"]

    @pytest.mark.asyncio
    async def test_close_discards_pending(
        self, stream_settings: StreamSettings, throttle_settings: ThrottleSettings
    ) -> None:
        trades = RecentTradesProjection("BTC", stream_settings, throttle_settings)
        trades.on_trade(_trade(1))
        await trades.close()
        await asyncio.sleep(0.05)
        assert trades.get_trades() == []

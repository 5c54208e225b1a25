"""Shared test fixtures for the market desk."""

import asyncio
import json
from collections.abc import Iterable
from contextlib import asynccontextmanager
from typing import Any

import pytest

from marketdesk.config import (
    AppSettings,
    LiveMomentumSettings,
    MomentumSettings,
    StorageSettings,
    StreamSettings,
    ThrottleSettings,
)


@pytest.fixture
def stream_settings() -> StreamSettings:
    return StreamSettings(ws_url="wss://example.test/ws", quote_asset="USDT", default_depth=20)


@pytest.fixture
def throttle_settings() -> ThrottleSettings:
    """Short flush periods so throttle tests run in milliseconds."""
    return ThrottleSettings(
        ticker_interval=0.05,
        depth_interval=0.02,
        trade_interval=0.02,
        kline_interval=0.02,
        recent_trades_cap=50,
    )


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with test defaults and an in-memory database."""
    return AppSettings(
        log_level="DEBUG",
        momentum=MomentumSettings(max_folders=7),
        live_momentum=LiveMomentumSettings(max_folders=10),
        storage=StorageSettings(db_path=":memory:"),
    )


class FakeSocket:
    """Async-iterable stand-in for a websockets client connection."""

    def __init__(self, frames: Iterable[Any], hold_open: bool = False) -> None:
        self._frames = [f if isinstance(f, (str, bytes)) else json.dumps(f) for f in frames]
        self._hold_open = hold_open

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self._frames:
            yield frame
        if self._hold_open:
            await asyncio.Event().wait()


def make_fake_connect(frames: Iterable[Any], hold_open: bool = False, calls: list | None = None):
    """Build a ``connect`` replacement that yields ``frames`` then closes (or blocks)."""

    @asynccontextmanager
    async def fake_connect(url: str, **kwargs: Any):
        if calls is not None:
            calls.append((url, kwargs))
        yield FakeSocket(frames, hold_open=hold_open)

    return fake_connect


@pytest.fixture
def fake_connect_factory():
    return make_fake_connect

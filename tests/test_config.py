"""Tests for the pydantic-settings configuration groups."""

import pytest

from marketdesk.config import (
    AppSettings,
    LiveMomentumSettings,
    MomentumSettings,
    StreamSettings,
    ThrottleSettings,
)


class TestDefaults:
    """Out-of-the-box values."""

    def test_throttle_periods(self) -> None:
        settings = ThrottleSettings()
        assert settings.ticker_interval == 1.0
        assert settings.depth_interval == 0.25
        assert settings.trade_interval == 0.25
        assert settings.kline_interval == 0.5
        assert settings.recent_trades_cap == 50

    def test_folder_limits(self) -> None:
        assert MomentumSettings().max_folders == 7
        assert LiveMomentumSettings().max_folders == 10
        assert MomentumSettings().isolate_buffers is False


class TestEnvironment:
    """Environment variables override defaults per prefix."""

    def test_prefixed_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STREAM_QUOTE_ASSET", "FDUSD")
        monkeypatch.setenv("MOMENTUM_ISOLATE_BUFFERS", "true")
        monkeypatch.setenv("LIVE_MOMENTUM_DEFAULT_TIME_WINDOW", "60")
        assert StreamSettings().quote_asset == "FDUSD"
        assert MomentumSettings().isolate_buffers is True
        assert LiveMomentumSettings().default_time_window == 60

    def test_invalid_period_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STREAM_PRICE_CHANGE_PERIOD", "7d")
        with pytest.raises(ValueError):
            StreamSettings()

    def test_app_settings_composes_groups(self) -> None:
        settings = AppSettings()
        assert settings.stream.exchange_id == "binance"
        assert settings.storage.db_path == "data/marketdesk.db"
        assert settings.dashboard.port == 8080

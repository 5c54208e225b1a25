"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

PriceChangePeriod = Literal["5m", "15m", "30m", "1h", "4h", "24h"]


class StreamSettings(BaseSettings):
    """Exchange endpoints and feed defaults."""

    model_config = SettingsConfigDict(env_prefix="STREAM_")

    ws_url: str = "wss://stream.binance.com:9443/ws"
    exchange_id: str = "binance"  # ccxt exchange id used for REST snapshots
    quote_asset: str = "USDT"
    default_depth: int = 20  # order-book levels kept per side
    kline_interval: str = "1h"
    kline_limit: int = 500
    price_change_period: PriceChangePeriod = "24h"
    open_timeout: float = 10.0  # seconds allowed for the websocket handshake


class ThrottleSettings(BaseSettings):
    """Flush cadences for the projection buffers (seconds)."""

    model_config = SettingsConfigDict(env_prefix="THROTTLE_")

    ticker_interval: float = 1.0
    depth_interval: float = 0.25
    trade_interval: float = 0.25
    kline_interval: float = 0.5
    recent_trades_cap: int = 50


class MomentumSettings(BaseSettings):
    """Fixed-count (timer-driven) momentum tracker.

    Thresholds apply to momentum = velocity * R^2. A result is FLAT whenever
    R^2 is below ``strength_floor``.
    """

    model_config = SettingsConfigDict(env_prefix="MOMENTUM_")

    max_folders: int = 7
    default_window_size: int = 20  # samples
    default_interval: int = 10  # seconds between ticks
    strength_floor: float = 0.3
    weak_threshold: float = 0.001  # 0.1%
    strong_threshold: float = 0.005  # 0.5%
    isolate_buffers: bool = False  # key price buffers by (folder, symbol) instead of symbol


class LiveMomentumSettings(BaseSettings):
    """Fixed-duration (reactive) momentum tracker."""

    model_config = SettingsConfigDict(env_prefix="LIVE_MOMENTUM_")

    max_folders: int = 10
    default_time_window: int = 300  # seconds
    strength_floor: float = 0.2
    weak_threshold: float = 0.0001
    strong_threshold: float = 0.001


class StorageSettings(BaseSettings):
    """Folder persistence location."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    db_path: str = "data/marketdesk.db"


class DashboardSettings(BaseSettings):
    """Host API server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    stream: StreamSettings = StreamSettings()
    throttle: ThrottleSettings = ThrottleSettings()
    momentum: MomentumSettings = MomentumSettings()
    live_momentum: LiveMomentumSettings = LiveMomentumSettings()
    storage: StorageSettings = StorageSettings()
    dashboard: DashboardSettings = DashboardSettings()

"""Momentum tracker data models.

Folders own their coins. Price history (``prices``) and the derived stats
live only in memory; the persisted form of a folder is its structure.
"""

from dataclasses import dataclass, field
from enum import Enum

from marketdesk.models import PriceSample, now_ms


class TrendState(str, Enum):
    """Trend label derived from (momentum, R^2)."""

    STRONG_UP = "STRONG_UP"
    UP = "UP"
    FLAT = "FLAT"
    DOWN = "DOWN"
    STRONG_DOWN = "STRONG_DOWN"


@dataclass(frozen=True)
class MomentumStats:
    """Regression output for one price window."""

    momentum: float  # velocity * r_squared
    velocity: float  # slope / mean price
    r_squared: float  # 0..1


ZERO_STATS = MomentumStats(momentum=0.0, velocity=0.0, r_squared=0.0)


@dataclass(frozen=True)
class TrendThresholds:
    """Per-tracker classification thresholds on momentum magnitude."""

    strength_floor: float
    weak: float
    strong: float


@dataclass
class MomentumResult:
    """Read model handed to consumers; sorted by momentum descending."""

    symbol: str
    momentum: float
    velocity: float
    r_squared: float
    current_price: float
    trend: TrendState
    data_point_count: int = 0


@dataclass
class TrackedCoin:
    """Fixed-count tracker coin; ``prices`` mirrors the regression buffer (len <= window)."""

    symbol: str
    prices: list[float] = field(default_factory=list)
    momentum: float = 0.0
    velocity: float = 0.0
    r_squared: float = 0.0
    last_update: int = field(default_factory=now_ms)
    added_at: int = field(default_factory=now_ms)


@dataclass
class MomentumFolder:
    """A named group of coins sampled every ``interval`` seconds over ``window_size`` samples."""

    id: str
    name: str
    window_size: int
    interval: int
    coins: list[TrackedCoin] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    is_active: bool = False

    def find_coin(self, symbol: str) -> TrackedCoin | None:
        return next((c for c in self.coins if c.symbol == symbol), None)

    @property
    def symbols(self) -> list[str]:
        return [c.symbol for c in self.coins]


@dataclass
class LiveTrackedCoin:
    """Fixed-duration tracker coin; samples older than the folder window are pruned."""

    symbol: str
    prices: list[PriceSample] = field(default_factory=list)
    momentum: float = 0.0
    velocity: float = 0.0
    r_squared: float = 0.0
    current_price: float = 0.0
    last_update: int = 0


@dataclass
class LiveMomentumFolder:
    """A named group of coins regressed over the last ``time_window`` seconds."""

    id: str
    name: str
    time_window: int  # seconds
    coins: list[LiveTrackedCoin] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)

    def find_coin(self, symbol: str) -> LiveTrackedCoin | None:
        return next((c for c in self.coins if c.symbol == symbol), None)

    @property
    def symbols(self) -> list[str]:
        return [c.symbol for c in self.coins]

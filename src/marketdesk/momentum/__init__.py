"""Momentum analytics -- regression engine and the fixed-count / fixed-duration folder trackers."""

from marketdesk.momentum.engine import calculate_momentum, classify_trend
from marketdesk.momentum.fixed_count import MomentumTracker
from marketdesk.momentum.fixed_duration import LiveMomentumTracker, apply_price_update
from marketdesk.momentum.models import (
    LiveMomentumFolder,
    LiveTrackedCoin,
    MomentumFolder,
    MomentumResult,
    MomentumStats,
    TrackedCoin,
    TrendState,
    TrendThresholds,
)
from marketdesk.momentum.service import MomentumService

__all__ = [
    "LiveMomentumFolder",
    "LiveMomentumTracker",
    "LiveTrackedCoin",
    "MomentumFolder",
    "MomentumResult",
    "MomentumService",
    "MomentumStats",
    "MomentumTracker",
    "TrackedCoin",
    "TrendState",
    "TrendThresholds",
    "apply_price_update",
    "calculate_momentum",
    "classify_trend",
]

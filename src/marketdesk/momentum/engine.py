"""Linear-regression momentum over an ordered price window.

Prices are regressed against an implicit index t = 1..N, so spacing between
samples is ignored: the fixed-count tracker samples on a timer, and the
fixed-duration tracker samples on price change, and both feed this same
function. The result is a measure of trend shape over arrival order.

    slope     = (N*S_tp - S_t*S_p) / (N*S_t2 - S_t^2)
    R^2       = 1 - SS_res / SS_tot             (0 when SS_tot == 0)
    velocity  = slope / mean(price)             (0 when mean <= 0)
    momentum  = velocity * R^2

Fewer than three prices, a degenerate denominator, or any non-finite value
along the way all produce ZERO_STATS; NaN never leaves this module.
"""

import math
from collections.abc import Sequence

from marketdesk.momentum.models import MomentumStats, TrendState, TrendThresholds, ZERO_STATS

MIN_SAMPLES = 3


def calculate_momentum(prices: Sequence[float]) -> MomentumStats:
    """Compute momentum, normalized velocity and R^2 for ``prices`` (oldest first)."""
    n = len(prices)
    if n < MIN_SAMPLES:
        return ZERO_STATS

    s_p = math.fsum(prices)
    s_t = n * (n + 1) / 2
    s_t2 = n * (n + 1) * (2 * n + 1) / 6
    s_tp = math.fsum(t * p for t, p in enumerate(prices, start=1))

    denominator = n * s_t2 - s_t * s_t
    if denominator == 0:
        return ZERO_STATS

    # A flat window has zero slope and zero SS_tot exactly; the float sums
    # above can leave rounding residue in both.
    if max(prices) == min(prices):
        return ZERO_STATS

    slope = (n * s_tp - s_t * s_p) / denominator
    mean_p = s_p / n
    intercept = mean_p - slope * (s_t / n)

    ss_res = 0.0
    ss_tot = 0.0
    for t, price in enumerate(prices, start=1):
        ss_res += (price - (slope * t + intercept)) ** 2
        ss_tot += (price - mean_p) ** 2

    r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0
    r_squared = min(max(r_squared, 0.0), 1.0)

    velocity = slope / mean_p if mean_p > 0 else 0.0
    momentum = velocity * r_squared

    if not all(math.isfinite(v) for v in (momentum, velocity, r_squared)):
        return ZERO_STATS
    return MomentumStats(momentum=momentum, velocity=velocity, r_squared=r_squared)


def classify_trend(momentum: float, r_squared: float, thresholds: TrendThresholds) -> TrendState:
    """Map (momentum, R^2) to a trend label.

    Below the R^2 strength floor the trend is too noisy to call and is FLAT
    regardless of slope. Otherwise the signed momentum is compared against
    the strong and weak magnitudes.
    """
    if r_squared < thresholds.strength_floor:
        return TrendState.FLAT
    if momentum > thresholds.strong:
        return TrendState.STRONG_UP
    if momentum > thresholds.weak:
        return TrendState.UP
    if momentum < -thresholds.strong:
        return TrendState.STRONG_DOWN
    if momentum < -thresholds.weak:
        return TrendState.DOWN
    return TrendState.FLAT

"""Fixed-duration momentum tracker: samples from the last ``time_window`` seconds.

Unlike the fixed-count tracker there is no timer. Each price map that
arrives (in practice, each ticker flush) is folded into every folder by
``apply_price_update``, a pure function of (folder, prices, now). The
tracker swaps in the returned folders; nothing it produces feeds back into
its own trigger.

A coin only gains a sample when its price has changed since the last one,
so samples are unevenly spaced in time. The regression still uses the
equal-spaced index: it measures trend shape over arrival order, not slope
per second.
"""

import uuid
from collections.abc import Mapping
from dataclasses import replace

from marketdesk.exceptions import FolderLimitExceeded, FolderNotFoundError
from marketdesk.logging import get_logger
from marketdesk.models import PriceSample, now_ms
from marketdesk.momentum.engine import calculate_momentum, classify_trend
from marketdesk.momentum.models import (
    LiveMomentumFolder,
    LiveTrackedCoin,
    MomentumResult,
    TrendThresholds,
)

logger = get_logger(__name__)


def prune_samples(samples: list[PriceSample], cutoff: int) -> list[PriceSample]:
    """Drop samples recorded before ``cutoff`` (Unix ms)."""
    return [s for s in samples if s.timestamp >= cutoff]


def apply_price_update(
    folder: LiveMomentumFolder, prices: Mapping[str, float], now: int
) -> LiveMomentumFolder:
    """Return ``folder`` with a new sample appended for every coin whose price moved.

    The input folder is not mutated. When no coin has a usable price the same
    object is returned, so callers can detect "nothing changed" by identity.
    """
    if not folder.coins or not any(c.symbol in prices for c in folder.coins):
        return folder

    cutoff = now - folder.time_window * 1000
    changed = False
    coins: list[LiveTrackedCoin] = []
    for coin in folder.coins:
        price = prices.get(coin.symbol)
        if not price:
            coins.append(coin)
            continue
        if coin.current_price == price and coin.prices:
            coins.append(coin)
            continue

        samples = prune_samples([*coin.prices, PriceSample(price=price, timestamp=now)], cutoff)
        stats = calculate_momentum([s.price for s in samples])
        coins.append(
            replace(
                coin,
                prices=samples,
                momentum=stats.momentum,
                velocity=stats.velocity,
                r_squared=stats.r_squared,
                current_price=price,
                last_update=now,
            )
        )
        changed = True

    if not changed:
        return folder
    return replace(folder, coins=coins)


class LiveMomentumTracker:
    """Holds fixed-duration folders and folds incoming price maps into them."""

    def __init__(self, thresholds: TrendThresholds, max_folders: int = 10) -> None:
        self._thresholds = thresholds
        self._max_folders = max_folders
        self._folders: dict[str, LiveMomentumFolder] = {}

    @property
    def folders(self) -> list[LiveMomentumFolder]:
        return list(self._folders.values())

    def get_folder(self, folder_id: str) -> LiveMomentumFolder:
        folder = self._folders.get(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        return folder

    def create_folder(self, name: str, time_window: int) -> str:
        """Create an empty folder; validation runs before anything is stored."""
        name = name.strip()
        if not name:
            raise ValueError("Folder name is required")
        if time_window < 1:
            raise ValueError("time_window must be at least 1 second")
        if len(self._folders) >= self._max_folders:
            raise FolderLimitExceeded(self._max_folders)

        folder = LiveMomentumFolder(id=uuid.uuid4().hex, name=name, time_window=time_window)
        self._folders[folder.id] = folder
        logger.info("live_folder_created", folder_id=folder.id, name=name, time_window=time_window)
        return folder.id

    def restore_folder(self, folder: LiveMomentumFolder) -> None:
        self._folders[folder.id] = folder

    def delete_folder(self, folder_id: str) -> bool:
        removed = self._folders.pop(folder_id, None) is not None
        if removed:
            logger.info("live_folder_deleted", folder_id=folder_id)
        return removed

    def add_coin(
        self, folder_id: str, symbol: str, current_price: float, now: int | None = None
    ) -> bool:
        """Add ``symbol`` with one seed sample; False if it is already in the folder."""
        folder = self.get_folder(folder_id)
        if folder.find_coin(symbol) is not None:
            logger.warning("symbol_already_tracked", folder_id=folder_id, symbol=symbol)
            return False
        now = now if now is not None else now_ms()
        coin = LiveTrackedCoin(
            symbol=symbol,
            prices=[PriceSample(price=current_price, timestamp=now)],
            current_price=current_price,
            last_update=now,
        )
        self._folders[folder_id] = replace(folder, coins=[*folder.coins, coin])
        logger.info("live_coin_added", folder_id=folder_id, symbol=symbol)
        return True

    def remove_coin(self, folder_id: str, symbol: str) -> bool:
        folder = self.get_folder(folder_id)
        coins = [c for c in folder.coins if c.symbol != symbol]
        if len(coins) == len(folder.coins):
            return False
        self._folders[folder_id] = replace(folder, coins=coins)
        logger.info("live_coin_removed", folder_id=folder_id, symbol=symbol)
        return True

    def update_all_prices(self, prices: Mapping[str, float], now: int | None = None) -> int:
        """Fold ``prices`` into every folder; returns how many folders changed."""
        now = now if now is not None else now_ms()
        changed = 0
        for folder_id, folder in list(self._folders.items()):
            updated = apply_price_update(folder, prices, now)
            if updated is not folder:
                self._folders[folder_id] = updated
                changed += 1
        return changed

    def get_folder_coins(self, folder_id: str) -> list[LiveTrackedCoin]:
        folder = self._folders.get(folder_id)
        return list(folder.coins) if folder is not None else []

    def get_results(self, folder_id: str) -> list[MomentumResult]:
        """Per-coin results, highest momentum first."""
        folder = self.get_folder(folder_id)
        results = [
            MomentumResult(
                symbol=coin.symbol,
                momentum=coin.momentum,
                velocity=coin.velocity,
                r_squared=coin.r_squared,
                current_price=coin.current_price,
                trend=classify_trend(coin.momentum, coin.r_squared, self._thresholds),
                data_point_count=len(coin.prices),
            )
            for coin in folder.coins
        ]
        results.sort(key=lambda r: r.momentum, reverse=True)
        return results

"""Fixed-count momentum tracker: last N samples per coin, sampled on a per-folder timer.

Each active folder runs a background task that wakes every ``interval``
seconds, reads the current price map, pushes one sample per coin into a
FIFO buffer, truncates it to the folder's ``window_size`` and reruns the
regression. Wall-clock spacing between samples does not matter here.

Buffer sharing: by default buffers are keyed by symbol alone, so two
folders tracking the same symbol push into (and truncate) the same
buffer, and one folder's window size affects what the other regresses
over on its next tick. Set ``isolate_buffers`` to key them by
(folder id, symbol) instead.
"""

import asyncio
import uuid
from collections.abc import Callable, Hashable, Mapping

from marketdesk.exceptions import FolderLimitExceeded, FolderNotFoundError
from marketdesk.logging import get_logger
from marketdesk.models import now_ms
from marketdesk.momentum.engine import calculate_momentum, classify_trend
from marketdesk.momentum.models import MomentumFolder, MomentumResult, TrackedCoin, TrendThresholds

logger = get_logger(__name__)

PriceSource = Callable[[], Mapping[str, float]]


class MomentumTracker:
    """Owns fixed-count folders, their price buffers and their tick tasks."""

    def __init__(
        self,
        thresholds: TrendThresholds,
        price_source: PriceSource | None = None,
        max_folders: int = 7,
        isolate_buffers: bool = False,
    ) -> None:
        self._thresholds = thresholds
        self._price_source: PriceSource = price_source or dict
        self._max_folders = max_folders
        self._isolate_buffers = isolate_buffers
        self._folders: dict[str, MomentumFolder] = {}
        self._results: dict[str, list[MomentumResult]] = {}
        self._buffers: dict[Hashable, list[float]] = {}
        self._tasks: dict[str, asyncio.Task] = {}  # type: ignore[type-arg]

    @property
    def folders(self) -> list[MomentumFolder]:
        return list(self._folders.values())

    @property
    def thresholds(self) -> TrendThresholds:
        return self._thresholds

    def get_folder(self, folder_id: str) -> MomentumFolder:
        folder = self._folders.get(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        return folder

    def set_price_source(self, price_source: PriceSource) -> None:
        self._price_source = price_source

    # ──────────────────────────────────────────────
    # Folder lifecycle
    # ──────────────────────────────────────────────

    def create_folder(self, name: str, window_size: int, interval: int) -> str:
        """Create an inactive folder and return its id.

        Validation happens before anything is stored: an empty name, a
        window or interval below 1, or a full folder list leave state untouched.
        """
        name = name.strip()
        if not name:
            raise ValueError("Folder name is required")
        if window_size < 1 or interval < 1:
            raise ValueError("window_size and interval must be at least 1")
        if len(self._folders) >= self._max_folders:
            raise FolderLimitExceeded(self._max_folders)

        folder = MomentumFolder(
            id=uuid.uuid4().hex, name=name, window_size=window_size, interval=interval
        )
        self._folders[folder.id] = folder
        logger.info(
            "momentum_folder_created",
            folder_id=folder.id,
            name=name,
            window_size=window_size,
            interval=interval,
        )
        return folder.id

    def restore_folder(self, folder: MomentumFolder) -> None:
        """Register a folder loaded from storage (inactive, empty history)."""
        folder.is_active = False
        self._folders[folder.id] = folder

    def delete_folder(self, folder_id: str) -> bool:
        """Stop the folder's timer and drop it with all its coins and results."""
        self.stop(folder_id)
        folder = self._folders.pop(folder_id, None)
        self._results.pop(folder_id, None)
        if folder is None:
            return False
        if self._isolate_buffers:
            for symbol in folder.symbols:
                self._buffers.pop((folder_id, symbol), None)
        logger.info("momentum_folder_deleted", folder_id=folder_id)
        return True

    def add_coin(self, folder_id: str, symbol: str, current_price: float) -> bool:
        """Add ``symbol`` seeded with ``current_price``; False if it is already tracked."""
        folder = self.get_folder(folder_id)
        if folder.find_coin(symbol) is not None:
            logger.warning("symbol_already_tracked", folder_id=folder_id, symbol=symbol)
            return False

        key = self._buffer_key(folder_id, symbol)
        if not self._buffers.get(key):
            self._buffers[key] = [current_price]
        folder.coins.append(TrackedCoin(symbol=symbol, prices=[current_price]))
        logger.info("momentum_coin_added", folder_id=folder_id, symbol=symbol)
        return True

    def remove_coin(self, folder_id: str, symbol: str) -> bool:
        """Remove ``symbol`` from the folder and drop its buffer."""
        folder = self.get_folder(folder_id)
        coin = folder.find_coin(symbol)
        if coin is None:
            return False
        folder.coins.remove(coin)
        self._buffers.pop(self._buffer_key(folder_id, symbol), None)
        if folder_id in self._results:
            self._results[folder_id] = [r for r in self._results[folder_id] if r.symbol != symbol]
        logger.info("momentum_coin_removed", folder_id=folder_id, symbol=symbol)
        return True

    def _buffer_key(self, folder_id: str, symbol: str) -> Hashable:
        return (folder_id, symbol) if self._isolate_buffers else symbol

    def buffer_for(self, folder_id: str, symbol: str) -> list[float]:
        """Copy of the regression buffer the folder reads for ``symbol``."""
        return list(self._buffers.get(self._buffer_key(folder_id, symbol), []))

    # ──────────────────────────────────────────────
    # Sampling
    # ──────────────────────────────────────────────

    def tick(self, folder_id: str, prices: Mapping[str, float]) -> list[MomentumResult]:
        """Push one sample per priced coin and recompute its stats.

        Coins with no price (or a non-positive one) are skipped. The folder's
        result list is replaced by this tick's results when at least one coin
        was sampled. A folder deleted since the tick was scheduled is a no-op.
        """
        folder = self._folders.get(folder_id)
        if folder is None:
            return []

        now = now_ms()
        tick_results: list[MomentumResult] = []
        for coin in folder.coins:
            price = prices.get(coin.symbol)
            if not price or price <= 0:
                continue

            key = self._buffer_key(folder_id, coin.symbol)
            buffer = self._buffers.get(key, [])
            buffer.append(price)
            if len(buffer) > folder.window_size:
                buffer = buffer[-folder.window_size :]
            self._buffers[key] = buffer

            stats = calculate_momentum(buffer)
            coin.prices = list(buffer)
            coin.momentum = stats.momentum
            coin.velocity = stats.velocity
            coin.r_squared = stats.r_squared
            coin.last_update = now

            tick_results.append(
                MomentumResult(
                    symbol=coin.symbol,
                    momentum=stats.momentum,
                    velocity=stats.velocity,
                    r_squared=stats.r_squared,
                    current_price=price,
                    trend=classify_trend(stats.momentum, stats.r_squared, self._thresholds),
                    data_point_count=len(buffer),
                )
            )

        if tick_results:
            self._results[folder_id] = tick_results
        return tick_results

    def get_results(self, folder_id: str) -> list[MomentumResult]:
        """Latest tick's results, highest momentum first."""
        self.get_folder(folder_id)
        return sorted(self._results.get(folder_id, []), key=lambda r: r.momentum, reverse=True)

    # ──────────────────────────────────────────────
    # Timers
    # ──────────────────────────────────────────────

    def start(self, folder_id: str, prices: Mapping[str, float] | None = None) -> None:
        """Activate the folder: optional immediate tick, then one tick per interval."""
        folder = self.get_folder(folder_id)
        if folder.is_active:
            logger.warning("momentum_folder_already_active", folder_id=folder_id)
            return
        if prices is not None:
            self.tick(folder_id, prices)
        self._tasks[folder_id] = asyncio.create_task(
            self._tick_loop(folder_id, folder.interval), name=f"momentum:{folder_id}"
        )
        folder.is_active = True
        logger.info("momentum_folder_started", folder_id=folder_id, interval=folder.interval)

    def stop(self, folder_id: str) -> None:
        """Cancel the folder's timer. Safe to call on inactive or unknown folders."""
        task = self._tasks.pop(folder_id, None)
        if task is not None:
            task.cancel()
        folder = self._folders.get(folder_id)
        if folder is not None and folder.is_active:
            folder.is_active = False
            logger.info("momentum_folder_stopped", folder_id=folder_id)

    def toggle(self, folder_id: str, prices: Mapping[str, float] | None = None) -> bool:
        """Start an inactive folder or stop an active one; returns the new state."""
        if self.get_folder(folder_id).is_active:
            self.stop(folder_id)
            return False
        self.start(folder_id, prices)
        return True

    async def shutdown(self) -> None:
        """Stop every folder and wait for the cancelled tasks to finish."""
        tasks = list(self._tasks.values())
        for folder_id in list(self._tasks):
            self.stop(folder_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("momentum_tracker_shutdown", stopped=len(tasks))

    async def _tick_loop(self, folder_id: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if folder_id not in self._folders:
                return
            try:
                self.tick(folder_id, self._price_source())
            except Exception:
                logger.warning("momentum_tick_error", folder_id=folder_id, exc_info=True)

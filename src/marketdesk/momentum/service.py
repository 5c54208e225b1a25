"""Momentum facade: both trackers wired to the shared price cache and to storage.

The fixed-count tracker pulls prices from the cache on its own timers. The
fixed-duration tracker is pushed the full price map after every ticker flush
via a cache subscription. Structural changes (folders, symbols) are saved as
they happen; price history never is.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING

from marketdesk.config import LiveMomentumSettings, MomentumSettings
from marketdesk.exceptions import PriceUnavailableError
from marketdesk.logging import get_logger
from marketdesk.market_data.price_cache import SharedPriceCache, Unsubscribe
from marketdesk.momentum.fixed_count import MomentumTracker
from marketdesk.momentum.fixed_duration import LiveMomentumTracker
from marketdesk.momentum.models import MomentumResult, TrendThresholds

if TYPE_CHECKING:
    from marketdesk.storage.folder_store import FolderStore

logger = get_logger(__name__)


def thresholds_from_settings(settings: MomentumSettings | LiveMomentumSettings) -> TrendThresholds:
    return TrendThresholds(
        strength_floor=settings.strength_floor,
        weak=settings.weak_threshold,
        strong=settings.strong_threshold,
    )


class MomentumService:
    """Folder operations for both tracker variants, with persistence."""

    def __init__(
        self,
        cache: SharedPriceCache,
        momentum_settings: MomentumSettings,
        live_settings: LiveMomentumSettings,
        store: "FolderStore | None" = None,
    ) -> None:
        self._cache = cache
        self._momentum_settings = momentum_settings
        self._live_settings = live_settings
        self._store = store
        self.tracker = MomentumTracker(
            thresholds_from_settings(momentum_settings),
            price_source=cache.snapshot,
            max_folders=momentum_settings.max_folders,
            isolate_buffers=momentum_settings.isolate_buffers,
        )
        self.live_tracker = LiveMomentumTracker(
            thresholds_from_settings(live_settings),
            max_folders=live_settings.max_folders,
        )
        self._unsubscribe: Unsubscribe | None = None

    async def load(self) -> None:
        """Run storage migrations and restore folder structure (cold, zero momentum)."""
        if self._store is None:
            return
        await self._store.migrate()
        for folder in await self._store.load_momentum_folders():
            self.tracker.restore_folder(folder)
        for live_folder in await self._store.load_live_folders():
            self.live_tracker.restore_folder(live_folder)
        logger.info(
            "momentum_folders_loaded",
            momentum=len(self.tracker.folders),
            live=len(self.live_tracker.folders),
        )

    def attach(self) -> None:
        """Subscribe the fixed-duration tracker to ticker flushes."""
        if self._unsubscribe is None:
            self._unsubscribe = self._cache.subscribe(self._on_prices)

    def _on_prices(self, prices: Mapping[str, float]) -> None:
        self.live_tracker.update_all_prices(prices)

    def _require_price(self, symbol: str) -> float:
        price = self._cache.get(symbol)
        if price <= 0:
            raise PriceUnavailableError(f"No price available for {symbol}")
        return price

    # ──────────────────────────────────────────────
    # Fixed-count folders
    # ──────────────────────────────────────────────

    async def create_momentum_folder(
        self, name: str, window_size: int | None = None, interval: int | None = None
    ) -> str:
        if window_size is None:
            window_size = self._momentum_settings.default_window_size
        if interval is None:
            interval = self._momentum_settings.default_interval
        folder_id = self.tracker.create_folder(name, window_size, interval)
        await self._save_momentum()
        return folder_id

    async def delete_momentum_folder(self, folder_id: str) -> None:
        if self.tracker.delete_folder(folder_id):
            await self._save_momentum()

    async def add_symbol_to_folder(self, folder_id: str, symbol: str) -> bool:
        """Add a symbol at its current cached price; False (no-op) if already present."""
        self.tracker.get_folder(folder_id)
        added = self.tracker.add_coin(folder_id, symbol, self._require_price(symbol))
        if added:
            await self._save_momentum()
        return added

    async def remove_symbol_from_folder(self, folder_id: str, symbol: str) -> bool:
        removed = self.tracker.remove_coin(folder_id, symbol)
        if removed:
            await self._save_momentum()
        return removed

    def start_folder(self, folder_id: str) -> None:
        """Start sampling, with an immediate first tick at the current prices."""
        self.tracker.start(folder_id, self._cache.snapshot())

    def stop_folder(self, folder_id: str) -> None:
        self.tracker.stop(folder_id)

    def get_folder_results(self, folder_id: str) -> list[MomentumResult]:
        return self.tracker.get_results(folder_id)

    # ──────────────────────────────────────────────
    # Fixed-duration folders
    # ──────────────────────────────────────────────

    async def create_live_folder(self, name: str, time_window: int | None = None) -> str:
        if time_window is None:
            time_window = self._live_settings.default_time_window
        folder_id = self.live_tracker.create_folder(name, time_window)
        await self._save_live()
        return folder_id

    async def delete_live_folder(self, folder_id: str) -> None:
        if self.live_tracker.delete_folder(folder_id):
            await self._save_live()

    async def add_symbol_to_live_folder(self, folder_id: str, symbol: str) -> bool:
        self.live_tracker.get_folder(folder_id)
        added = self.live_tracker.add_coin(folder_id, symbol, self._require_price(symbol))
        if added:
            await self._save_live()
        return added

    async def remove_symbol_from_live_folder(self, folder_id: str, symbol: str) -> bool:
        removed = self.live_tracker.remove_coin(folder_id, symbol)
        if removed:
            await self._save_live()
        return removed

    def get_live_folder_results(self, folder_id: str) -> list[MomentumResult]:
        return self.live_tracker.get_results(folder_id)

    # ──────────────────────────────────────────────
    # Persistence / teardown
    # ──────────────────────────────────────────────

    async def _save_momentum(self) -> None:
        if self._store is not None:
            await self._store.save_momentum_folders(self.tracker.folders)

    async def _save_live(self) -> None:
        if self._store is not None:
            await self._store.save_live_folders(self.live_tracker.folders)

    async def close(self) -> None:
        """Detach from the cache, stop every folder timer and flush structure to storage."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.tracker.shutdown()
        await self._save_momentum()
        await self._save_live()

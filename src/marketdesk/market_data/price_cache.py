"""Shared in-memory price cache for market data consumers.

The ticker projection writes every streamed price here immediately and
unthrottled; readers that want the freshest price call get(). Listeners, by
contrast, are only notified once per ticker flush, so a listener sees at most
one call per flush period no matter how fast the stream runs.

Everything runs on one event loop, so no lock is needed: writes and
notifications happen in loop callbacks, never concurrently.
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType

from marketdesk.logging import get_logger

logger = get_logger(__name__)

PriceListener = Callable[[Mapping[str, float]], None]
Unsubscribe = Callable[[], None]


class SharedPriceCache:
    """Latest known price per symbol with a publish/subscribe registry.

    Prices are keyed by base asset ("BTC"). An unknown symbol reads as 0.0,
    which means "no price yet" rather than an error.
    """

    def __init__(self) -> None:
        self._prices: dict[str, float] = {}
        self._listeners: list[PriceListener] = []

    def get(self, symbol: str) -> float:
        """Return the latest price for a symbol, or 0.0 if none has been seen."""
        return self._prices.get(symbol, 0.0)

    def set(self, symbol: str, price: float) -> None:
        """Store the latest price for a symbol (no notification)."""
        self._prices[symbol] = price

    def update_many(self, prices: Mapping[str, float]) -> None:
        """Store many prices at once (no notification)."""
        self._prices.update(prices)

    def snapshot(self) -> dict[str, float]:
        """Return a copy of the full price map."""
        return dict(self._prices)

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._prices

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: PriceListener) -> Unsubscribe:
        """Register a listener and return a disposer that removes it.

        The disposer is idempotent, so owners can call it from every
        teardown path without tracking whether it already ran.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Call every listener with a read-only view of the current map.

        A failing listener is logged and skipped; the rest are still called.
        """
        view = MappingProxyType(self._prices)
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.warning("price_listener_error", exc_info=True)

"""Trailing-edge throttle shared by every projection buffer.

The first trigger in a quiet period arms a timer; triggers that arrive while
it is armed do nothing (the owner has already updated its pending buffer).
When the timer fires it disarms itself first and then runs the flush, so a
message arriving during the flush re-arms for the next period.
"""

import asyncio
from collections.abc import Callable

from marketdesk.logging import get_logger

logger = get_logger(__name__)


class TrailingThrottle:
    """Run ``callback`` at most once per ``delay`` seconds, after the first trigger."""

    def __init__(self, delay: float, callback: Callable[[], None], name: str = "") -> None:
        self._delay = delay
        self._callback = callback
        self._name = name
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """Arm the timer unless it is already armed. Must run on the event loop."""
        if self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Disarm without running the callback."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception:
            logger.warning("throttled_flush_error", buffer=self._name, exc_info=True)

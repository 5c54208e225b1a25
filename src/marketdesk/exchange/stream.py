"""Streaming transport: one websocket per (feed kind, symbol).

StreamConnection owns the socket and a reader task. Frames are parsed with
the feed's parser and handed to the owner's callback; malformed frames are
dropped. A dropped connection is reported through ``connected``/``error``
and is not retried here: reconnection policy belongs to the caller.
"""

import asyncio
from collections.abc import Callable
from typing import Any, Generic, TypeVar

import websockets

from marketdesk.exceptions import FeedMessageError
from marketdesk.exchange.parsers import stream_symbol
from marketdesk.logging import bind_feed_context, get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Frame = str | bytes


def ticker_stream_url(ws_url: str) -> str:
    """All-symbols ticker array stream (a single shared connection)."""
    return f"{ws_url}/!ticker@arr"


def kline_stream_url(ws_url: str, symbol: str, interval: str, quote_asset: str = "USDT") -> str:
    return f"{ws_url}/{stream_symbol(symbol, quote_asset)}@kline_{interval}"


def depth_stream_url(ws_url: str, symbol: str, quote_asset: str = "USDT") -> str:
    return f"{ws_url}/{stream_symbol(symbol, quote_asset)}@depth"


def trade_stream_url(ws_url: str, symbol: str, quote_asset: str = "USDT") -> str:
    return f"{ws_url}/{stream_symbol(symbol, quote_asset)}@trade"


class StreamConnection(Generic[T]):
    """A single websocket subscription with parse-then-dispatch semantics.

    Usage:
        conn = StreamConnection(url, parse_depth_message, projection.on_depth, name="depth:BTC")
        conn.start()
        ...
        await conn.close()
    """

    def __init__(
        self,
        url: str,
        parse: Callable[[Frame], T],
        on_message: Callable[[T], None],
        name: str,
        open_timeout: float = 10.0,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._url = url
        self._parse = parse
        self._on_message = on_message
        self._name = name
        self._open_timeout = open_timeout
        self._connect = connect
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._connected = False
        self._closing = False
        self._error: str | None = None
        self.dropped_frames = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        """True while the socket is open and the reader task is consuming frames."""
        return self._connected

    @property
    def error(self) -> str | None:
        """Reason the connection was lost, or None while healthy / before start."""
        return self._error

    def start(self) -> None:
        """Spawn the reader task. Calling start() twice is a no-op."""
        if self._task is not None:
            logger.warning("stream_already_started", stream=self._name)
            return
        self._closing = False
        self._task = asyncio.create_task(self._run(), name=f"stream:{self._name}")

    async def close(self) -> None:
        """Cancel the reader task; the socket is closed before this returns."""
        self._closing = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.warning("stream_reader_failed", stream=self._name, exc_info=True)
            self._task = None
        self._connected = False
        logger.debug("stream_closed", stream=self._name)

    async def _run(self) -> None:
        bind_feed_context(stream=self._name)
        try:
            async with self._connect(self._url, open_timeout=self._open_timeout) as ws:
                self._connected = True
                self._error = None
                logger.info("stream_connected", url=self._url)
                async for frame in ws:
                    self._dispatch(frame)
            if not self._closing:
                self._error = "connection closed by server"
                logger.warning("stream_disconnected", reason=self._error)
        except asyncio.CancelledError:
            raise
        except websockets.exceptions.ConnectionClosed as exc:
            self._error = f"connection closed: {exc}"
            logger.warning("stream_disconnected", reason=self._error)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as exc:
            self._error = f"connection failed: {exc!r}"
            logger.warning("stream_connect_failed", url=self._url, reason=self._error)
        except Exception as exc:
            self._error = f"reader failed: {exc!r}"
            logger.error("stream_reader_error", url=self._url, reason=self._error)
        finally:
            self._connected = False

    def _dispatch(self, frame: Frame) -> None:
        """Parse one frame and hand it to the owner; never lets a bad frame escape."""
        try:
            message = self._parse(frame)
        except FeedMessageError as exc:
            self.dropped_frames += 1
            logger.debug("stream_frame_dropped", reason=str(exc))
            return
        try:
            self._on_message(message)
        except Exception:
            logger.warning("stream_handler_error", exc_info=True)

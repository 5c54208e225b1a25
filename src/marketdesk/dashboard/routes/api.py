"""JSON API endpoints for market data snapshots and momentum folders.

Per-symbol feeds are opened on first read and shared by every later reader;
DELETE on the same path closes the feed.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, get_args

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from marketdesk.config import PriceChangePeriod
from marketdesk.exceptions import FolderLimitExceeded, FolderNotFoundError, PriceUnavailableError
from marketdesk.momentum.models import LiveMomentumFolder, MomentumFolder, MomentumResult

log = structlog.get_logger(__name__)

router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def _domain_error(e: Exception) -> JSONResponse:
    """Map a domain exception raised by the momentum service to an HTTP error."""
    if isinstance(e, FolderNotFoundError):
        return _error(str(e), 404)
    if isinstance(e, FolderLimitExceeded):
        return _error(e.reason, 409)
    if isinstance(e, PriceUnavailableError):
        return _error(str(e), 422)
    return _error(str(e), 400)


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _field_type_error(
    body: dict[str, Any], text: tuple[str, ...] = (), integers: tuple[str, ...] = ()
) -> str | None:
    """Reason the body's field types are wrong, or None. Absent optional integers are fine."""
    for key in text:
        if not isinstance(body.get(key), str):
            return f"Field '{key}' must be a string"
    for key in integers:
        value = body.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            return f"Field '{key}' must be an integer"
    return None


def _result_to_dict(result: MomentumResult) -> dict[str, Any]:
    data = asdict(result)
    data["trend"] = result.trend.value
    return data


def _folder_to_dict(folder: MomentumFolder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "window_size": folder.window_size,
        "interval": folder.interval,
        "is_active": folder.is_active,
        "created_at": folder.created_at,
        "symbols": folder.symbols,
    }


def _live_folder_to_dict(folder: LiveMomentumFolder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "time_window": folder.time_window,
        "created_at": folder.created_at,
        "symbols": folder.symbols,
    }


# ──────────────────────────────────────────────
# Market data
# ──────────────────────────────────────────────


@router.get("/coins")
async def get_coins(request: Request) -> JSONResponse:
    """Coin list from the ticker projection, sorted by volume descending."""
    market_data = request.app.state.market_data
    return JSONResponse(content=[asdict(c) for c in market_data.get_coins_snapshot()])


@router.get("/prices")
async def get_prices(request: Request) -> JSONResponse:
    return JSONResponse(content=request.app.state.market_data.cache.snapshot())


@router.get("/prices/{symbol}")
async def get_price(request: Request, symbol: str) -> JSONResponse:
    price = request.app.state.market_data.get_current_price(symbol.upper())
    if price <= 0:
        return _error(f"No price available for {symbol}", 404)
    return JSONResponse(content={"symbol": symbol.upper(), "price": price})


@router.post("/period")
async def set_period(request: Request) -> JSONResponse:
    """Switch the price-change period used by the coin list."""
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body", 400)
    period = body.get("period")
    if period not in get_args(PriceChangePeriod):
        return _error(f"Unsupported period: {period}", 400)
    await request.app.state.market_data.set_period(period)
    log.info("price_change_period_set", period=period)
    return JSONResponse(content={"period": period})


@router.get("/feeds")
async def get_feeds(request: Request) -> JSONResponse:
    """Connection state of every open feed."""
    return JSONResponse(content=request.app.state.market_data.feed_status())


@router.get("/orderbook/{symbol}")
async def get_order_book(request: Request, symbol: str, depth: int | None = None) -> JSONResponse:
    market_data = request.app.state.market_data
    market_data.watch_order_book(symbol.upper(), depth)
    return JSONResponse(content=asdict(market_data.get_order_book_snapshot(symbol.upper())))


@router.delete("/orderbook/{symbol}")
async def unwatch_order_book(request: Request, symbol: str) -> JSONResponse:
    await request.app.state.market_data.unwatch_order_book(symbol.upper())
    return JSONResponse(content={"ok": True})


@router.get("/trades/{symbol}")
async def get_trades(request: Request, symbol: str) -> JSONResponse:
    market_data = request.app.state.market_data
    market_data.watch_trades(symbol.upper())
    return JSONResponse(content=[asdict(t) for t in market_data.get_recent_trades(symbol.upper())])


@router.delete("/trades/{symbol}")
async def unwatch_trades(request: Request, symbol: str) -> JSONResponse:
    await request.app.state.market_data.unwatch_trades(symbol.upper())
    return JSONResponse(content={"ok": True})


@router.get("/klines/{symbol}")
async def get_klines(request: Request, symbol: str, interval: str | None = None) -> JSONResponse:
    market_data = request.app.state.market_data
    await market_data.watch_klines(symbol.upper(), interval)
    return JSONResponse(
        content=[asdict(k) for k in market_data.get_klines(symbol.upper(), interval)]
    )


@router.delete("/klines/{symbol}")
async def unwatch_klines(request: Request, symbol: str, interval: str | None = None) -> JSONResponse:
    await request.app.state.market_data.unwatch_klines(symbol.upper(), interval)
    return JSONResponse(content={"ok": True})


# ──────────────────────────────────────────────
# Fixed-count momentum folders
# ──────────────────────────────────────────────


@router.get("/momentum/folders")
async def list_momentum_folders(request: Request) -> JSONResponse:
    momentum = request.app.state.momentum
    return JSONResponse(content=[_folder_to_dict(f) for f in momentum.tracker.folders])


@router.post("/momentum/folders")
async def create_momentum_folder(request: Request) -> JSONResponse:
    """Create a folder from ``{"name", "window_size"?, "interval"?}``."""
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body", 400)
    if "name" not in body:
        return _error("Missing required field: name", 400)
    reason = _field_type_error(body, text=("name",), integers=("window_size", "interval"))
    if reason is not None:
        return _error(reason, 400)
    momentum = request.app.state.momentum
    try:
        folder_id = await momentum.create_momentum_folder(
            body["name"], body.get("window_size"), body.get("interval")
        )
    except (FolderLimitExceeded, ValueError) as e:
        return _domain_error(e)
    return JSONResponse(
        content=_folder_to_dict(momentum.tracker.get_folder(folder_id)), status_code=201
    )


@router.delete("/momentum/folders/{folder_id}")
async def delete_momentum_folder(request: Request, folder_id: str) -> JSONResponse:
    await request.app.state.momentum.delete_momentum_folder(folder_id)
    return JSONResponse(content={"ok": True})


@router.post("/momentum/folders/{folder_id}/symbols")
async def add_momentum_symbol(request: Request, folder_id: str) -> JSONResponse:
    body = await _json_body(request)
    if body is None or not body.get("symbol"):
        return _error("Missing required field: symbol", 400)
    try:
        added = await request.app.state.momentum.add_symbol_to_folder(
            folder_id, str(body["symbol"]).upper()
        )
    except (FolderNotFoundError, PriceUnavailableError) as e:
        return _domain_error(e)
    return JSONResponse(content={"added": added})


@router.delete("/momentum/folders/{folder_id}/symbols/{symbol}")
async def remove_momentum_symbol(request: Request, folder_id: str, symbol: str) -> JSONResponse:
    try:
        removed = await request.app.state.momentum.remove_symbol_from_folder(
            folder_id, symbol.upper()
        )
    except FolderNotFoundError as e:
        return _domain_error(e)
    return JSONResponse(content={"removed": removed})


@router.post("/momentum/folders/{folder_id}/start")
async def start_momentum_folder(request: Request, folder_id: str) -> JSONResponse:
    try:
        request.app.state.momentum.start_folder(folder_id)
    except FolderNotFoundError as e:
        return _domain_error(e)
    return JSONResponse(content={"is_active": True})


@router.post("/momentum/folders/{folder_id}/stop")
async def stop_momentum_folder(request: Request, folder_id: str) -> JSONResponse:
    try:
        request.app.state.momentum.stop_folder(folder_id)
    except FolderNotFoundError as e:
        return _domain_error(e)
    return JSONResponse(content={"is_active": False})


@router.get("/momentum/folders/{folder_id}/results")
async def get_momentum_results(request: Request, folder_id: str) -> JSONResponse:
    """Latest results for a folder, sorted by momentum descending."""
    momentum = request.app.state.momentum
    try:
        momentum.tracker.get_folder(folder_id)
    except FolderNotFoundError as e:
        return _domain_error(e)
    results = momentum.get_folder_results(folder_id)
    return JSONResponse(content=[_result_to_dict(r) for r in results])


# ──────────────────────────────────────────────
# Fixed-duration momentum folders
# ──────────────────────────────────────────────


@router.get("/live-momentum/folders")
async def list_live_folders(request: Request) -> JSONResponse:
    momentum = request.app.state.momentum
    return JSONResponse(content=[_live_folder_to_dict(f) for f in momentum.live_tracker.folders])


@router.post("/live-momentum/folders")
async def create_live_folder(request: Request) -> JSONResponse:
    """Create a folder from ``{"name", "time_window"?}`` (seconds)."""
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body", 400)
    if "name" not in body:
        return _error("Missing required field: name", 400)
    reason = _field_type_error(body, text=("name",), integers=("time_window",))
    if reason is not None:
        return _error(reason, 400)
    momentum = request.app.state.momentum
    try:
        folder_id = await momentum.create_live_folder(body["name"], body.get("time_window"))
    except (FolderLimitExceeded, ValueError) as e:
        return _domain_error(e)
    return JSONResponse(
        content=_live_folder_to_dict(momentum.live_tracker.get_folder(folder_id)),
        status_code=201,
    )


@router.delete("/live-momentum/folders/{folder_id}")
async def delete_live_folder(request: Request, folder_id: str) -> JSONResponse:
    await request.app.state.momentum.delete_live_folder(folder_id)
    return JSONResponse(content={"ok": True})


@router.post("/live-momentum/folders/{folder_id}/symbols")
async def add_live_symbol(request: Request, folder_id: str) -> JSONResponse:
    body = await _json_body(request)
    if body is None or not body.get("symbol"):
        return _error("Missing required field: symbol", 400)
    try:
        added = await request.app.state.momentum.add_symbol_to_live_folder(
            folder_id, str(body["symbol"]).upper()
        )
    except (FolderNotFoundError, PriceUnavailableError) as e:
        return _domain_error(e)
    return JSONResponse(content={"added": added})


@router.delete("/live-momentum/folders/{folder_id}/symbols/{symbol}")
async def remove_live_symbol(request: Request, folder_id: str, symbol: str) -> JSONResponse:
    try:
        removed = await request.app.state.momentum.remove_symbol_from_live_folder(
            folder_id, symbol.upper()
        )
    except FolderNotFoundError as e:
        return _domain_error(e)
    return JSONResponse(content={"removed": removed})


@router.get("/live-momentum/folders/{folder_id}/results")
async def get_live_results(request: Request, folder_id: str) -> JSONResponse:
    momentum = request.app.state.momentum
    try:
        momentum.live_tracker.get_folder(folder_id)
    except FolderNotFoundError as e:
        return _domain_error(e)
    results = momentum.get_live_folder_results(folder_id)
    return JSONResponse(content=[_result_to_dict(r) for r in results])

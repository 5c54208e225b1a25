"""Structural folder records: the only durable form of a folder.

Records carry identity and window configuration. Coins come back with empty
price history and zeroed stats, to be rebuilt from live prices.
"""

from typing import Any

from marketdesk.momentum.models import (
    LiveMomentumFolder,
    LiveTrackedCoin,
    MomentumFolder,
    TrackedCoin,
)


def momentum_folder_to_record(folder: MomentumFolder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "symbols": folder.symbols,
        "window_size": folder.window_size,
        "interval": folder.interval,
        "created_at": folder.created_at,
    }


def momentum_folder_from_record(record: dict[str, Any]) -> MomentumFolder:
    created_at = int(record["created_at"])
    return MomentumFolder(
        id=str(record["id"]),
        name=str(record["name"]),
        window_size=int(record["window_size"]),
        interval=int(record["interval"]),
        coins=[
            TrackedCoin(symbol=symbol, last_update=created_at, added_at=created_at)
            for symbol in record.get("symbols", [])
        ],
        created_at=created_at,
        is_active=False,
    )


def live_folder_to_record(folder: LiveMomentumFolder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "coin_symbols": folder.symbols,
        "time_window": folder.time_window,
        "created_at": folder.created_at,
    }


def live_folder_from_record(record: dict[str, Any]) -> LiveMomentumFolder:
    return LiveMomentumFolder(
        id=str(record["id"]),
        name=str(record["name"]),
        time_window=int(record["time_window"]),
        coins=[LiveTrackedCoin(symbol=symbol) for symbol in record.get("coin_symbols", [])],
        created_at=int(record["created_at"]),
    )

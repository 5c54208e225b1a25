"""Versioned migrations of the persisted folder layout.

Version 1 stored whole folder objects, coins and price history included,
under unversioned keys. Version 2 stores structural records only, under
``*_v2`` keys. A migration runs when its target key is absent and its
legacy key is present; it writes the target key and deletes the legacy key,
so it never runs twice. A future layout change appends a new Migration here.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

MOMENTUM_FOLDERS_KEY = "momentum_folders_v2"
LIVE_FOLDERS_KEY = "live_momentum_folders_v2"

LEGACY_MOMENTUM_FOLDERS_KEY = "momentum_folders"
LEGACY_LIVE_FOLDERS_KEY = "live_momentum_folders"


def _field(obj: dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a field written either by this package (snake_case) or by the JS client (camelCase)."""
    if snake in obj:
        return obj[snake]
    return obj.get(camel, default)


def _coin_symbols(folder: dict[str, Any]) -> list[str]:
    symbols: list[str] = []
    for coin in folder.get("coins") or []:
        symbol = coin.get("symbol") if isinstance(coin, dict) else None
        if isinstance(symbol, str) and symbol not in symbols:
            symbols.append(symbol)
    return symbols


def migrate_legacy_momentum_folders(legacy: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Full fixed-count folders -> structural records, discarding price history."""
    return [
        {
            "id": str(folder["id"]),
            "name": folder["name"],
            "symbols": _coin_symbols(folder),
            "window_size": int(_field(folder, "window_size", "windowSize", 20)),
            "interval": int(_field(folder, "interval", "interval", 10)),
            "created_at": int(_field(folder, "created_at", "createdAt", 0)),
        }
        for folder in legacy
    ]


def migrate_legacy_live_folders(legacy: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Full fixed-duration folders -> structural records, discarding price history."""
    return [
        {
            "id": str(folder["id"]),
            "name": folder["name"],
            "coin_symbols": _coin_symbols(folder),
            "time_window": int(_field(folder, "time_window", "timeWindow", 300)),
            "created_at": int(_field(folder, "created_at", "createdAt", 0)),
        }
        for folder in legacy
    ]


@dataclass(frozen=True)
class Migration:
    """One legacy-key -> target-key transformation."""

    version: int
    legacy_key: str
    target_key: str
    transform: Callable[[list[dict[str, Any]]], list[dict[str, Any]]]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(2, LEGACY_MOMENTUM_FOLDERS_KEY, MOMENTUM_FOLDERS_KEY, migrate_legacy_momentum_folders),
    Migration(2, LEGACY_LIVE_FOLDERS_KEY, LIVE_FOLDERS_KEY, migrate_legacy_live_folders),
)

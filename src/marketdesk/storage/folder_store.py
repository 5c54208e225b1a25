"""Typed read/write access to persisted momentum folders.

Folders are stored as JSON arrays of structural records in the ``kv_store``
table, one key per tracker variant. All SQL lives here.
"""

import json
from collections.abc import Iterable
from typing import Any

from marketdesk.logging import get_logger
from marketdesk.models import now_ms
from marketdesk.momentum.models import LiveMomentumFolder, MomentumFolder
from marketdesk.storage.database import SCHEMA_VERSION, Database
from marketdesk.storage.migrations import LIVE_FOLDERS_KEY, MIGRATIONS, MOMENTUM_FOLDERS_KEY
from marketdesk.storage.records import (
    live_folder_from_record,
    live_folder_to_record,
    momentum_folder_from_record,
    momentum_folder_to_record,
)

logger = get_logger(__name__)


class FolderStore:
    """Load and save folder structure; runs pending migrations on demand."""

    def __init__(self, database: Database) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Key/value primitives
    # ──────────────────────────────────────────────

    async def get_value(self, key: str) -> Any | None:
        """Decoded JSON stored under ``key``; None when absent."""
        cursor = await self._database.db.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    async def has_key(self, key: str) -> bool:
        cursor = await self._database.db.execute(
            "SELECT 1 FROM kv_store WHERE key = ?", (key,)
        )
        return await cursor.fetchone() is not None

    async def set_value(self, key: str, value: Any) -> None:
        await self._database.db.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, json.dumps(value), now_ms()),
        )
        await self._database.db.commit()

    async def delete_value(self, key: str) -> None:
        await self._database.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await self._database.db.commit()

    # ──────────────────────────────────────────────
    # Migrations
    # ──────────────────────────────────────────────

    async def migrate(self) -> int:
        """Apply every migration whose legacy key is still present; returns the count applied.

        An unreadable legacy value is logged and left in place rather than
        deleted, so it can be recovered by hand.
        """
        applied = 0
        for migration in MIGRATIONS:
            if await self.has_key(migration.target_key):
                continue
            try:
                legacy = await self.get_value(migration.legacy_key)
            except ValueError:
                logger.warning("legacy_folders_unreadable", key=migration.legacy_key, exc_info=True)
                continue
            if legacy is None:
                continue
            try:
                records = migration.transform(legacy)
            except (KeyError, TypeError, ValueError):
                logger.warning("legacy_folders_migration_failed", key=migration.legacy_key, exc_info=True)
                continue
            await self.set_value(migration.target_key, records)
            await self.delete_value(migration.legacy_key)
            applied += 1
            logger.info(
                "legacy_folders_migrated",
                legacy_key=migration.legacy_key,
                target_key=migration.target_key,
                folders=len(records),
            )

        if await self._database.get_schema_version() < SCHEMA_VERSION:
            await self._database.set_schema_version(SCHEMA_VERSION)
        return applied

    # ──────────────────────────────────────────────
    # Folders
    # ──────────────────────────────────────────────

    async def load_momentum_folders(self) -> list[MomentumFolder]:
        records = await self._load_records(MOMENTUM_FOLDERS_KEY)
        return [momentum_folder_from_record(r) for r in records]

    async def save_momentum_folders(self, folders: Iterable[MomentumFolder]) -> None:
        records = [momentum_folder_to_record(f) for f in folders]
        await self.set_value(MOMENTUM_FOLDERS_KEY, records)
        logger.debug("momentum_folders_saved", count=len(records))

    async def load_live_folders(self) -> list[LiveMomentumFolder]:
        records = await self._load_records(LIVE_FOLDERS_KEY)
        return [live_folder_from_record(r) for r in records]

    async def save_live_folders(self, folders: Iterable[LiveMomentumFolder]) -> None:
        records = [live_folder_to_record(f) for f in folders]
        await self.set_value(LIVE_FOLDERS_KEY, records)
        logger.debug("live_folders_saved", count=len(records))

    async def _load_records(self, key: str) -> list[dict[str, Any]]:
        try:
            value = await self.get_value(key)
        except ValueError:
            logger.warning("stored_folders_unreadable", key=key, exc_info=True)
            return []
        if not isinstance(value, list):
            return []
        return [r for r in value if isinstance(r, dict)]

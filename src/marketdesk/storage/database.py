"""Async SQLite database manager for folder persistence.

Uses aiosqlite so saves never block the event loop that drives the feeds,
with WAL mode so a reader (e.g. a second host process) does not block saves.
"""

import os
from typing import Self

import aiosqlite

from marketdesk.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 2

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


class Database:
    """Async SQLite connection manager.

    Usage:
        async with Database("data/marketdesk.db") as database:
            store = FolderStore(database)
            folders = await store.load_momentum_folders()
    """

    def __init__(self, db_path: str = "data/marketdesk.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    @property
    def path(self) -> str:
        return self._db_path

    async def connect(self) -> None:
        """Open the connection, configure pragmas and create the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        if self._db_path != ":memory:":
            await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.commit()
        logger.info("database_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("database_closed", db_path=self._db_path)

    async def get_schema_version(self) -> int:
        """Highest applied schema version, or 0 for a fresh database."""
        cursor = await self.db.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        return int(row[0]) if row is not None and row[0] is not None else 0

    async def set_schema_version(self, version: int) -> None:
        await self.db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (version,)
        )
        await self.db.commit()
        logger.info("schema_version_set", version=version)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()

"""Folder persistence layer -- SQLite key/value store, structural records and migrations."""

from marketdesk.storage.database import Database
from marketdesk.storage.folder_store import FolderStore
from marketdesk.storage.migrations import MIGRATIONS, Migration

__all__ = ["Database", "FolderStore", "MIGRATIONS", "Migration"]

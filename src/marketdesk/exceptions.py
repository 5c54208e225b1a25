"""Custom exceptions for the market data and momentum layers.

Kept in one module so the feed, tracker and host layers can share them
without importing each other.
"""


class MarketDeskError(Exception):
    """Base exception for all marketdesk errors."""


class FeedMessageError(MarketDeskError):
    """Raised by a parser when a stream message has an unexpected shape.

    Never reaches observers: the stream adapter logs and drops the message.
    """


class PriceUnavailableError(MarketDeskError):
    """Raised when a symbol is added to a folder before any price is known for it."""


class FolderNotFoundError(MarketDeskError, KeyError):
    """Raised when an operation names a folder id that does not exist."""

    def __init__(self, folder_id: str) -> None:
        super().__init__(folder_id)
        self.folder_id = folder_id

    def __str__(self) -> str:
        return f"Folder {self.folder_id} not found"


class FolderLimitExceeded(MarketDeskError):
    """Raised when creating a folder would exceed the configured maximum.

    ``reason`` is a user-facing message; nothing has been mutated when this is raised.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.reason = f"You can create at most {limit} folders"
        super().__init__(self.reason)

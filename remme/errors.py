"""
Exceptions raised by the remme record store.

All store failures derive from StoreError so callers can catch the whole
family at once. The original SQLAlchemy exception is always chained as
``__cause__``.
"""
from typing import Optional


class StoreError(Exception):
    """Base exception for record store failures."""
    pass


class OpenError(StoreError):
    """Raised when the embedded database cannot be opened."""
    pass


class DuplicateKeyError(StoreError):
    """Raised when inserting a link whose id already exists."""

    def __init__(self, link_id: str, message: Optional[str] = None):
        self.link_id = link_id
        super().__init__(message or f"Link with id already exists: {link_id}")


class TransactionError(StoreError):
    """Raised when a read or write transaction fails or aborts."""
    pass

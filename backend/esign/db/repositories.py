"""Repository protocol interfaces for data access."""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from backend.esign.models.document import Document


class DocumentTransaction(Protocol):
    """Per-document unit of work.

    ``document`` is a private copy loaded under the document's lock; changes
    become visible to others only through ``save`` and a clean exit.
    """

    document: Document | None

    async def save(self, document: Document) -> None:
        """Stage the new document state for commit."""
        ...


class DocumentStore(Protocol):
    """Persistent store for documents with per-document mutual exclusion."""

    async def open(self) -> None:
        """Acquire connections; called once at application start."""
        ...

    async def close(self) -> None:
        """Release connections; called once at shutdown."""
        ...

    async def ping(self) -> bool:
        """Check the backing store is reachable."""
        ...

    async def create(self, document: Document) -> None:
        """Insert a new document.

        Raises:
            ValueError: If a document with the same id exists
        """
        ...

    async def get(self, document_id: str) -> Document | None:
        """Get document by ID.

        Args:
            document_id: Document ID

        Returns:
            Document or None if not found
        """
        ...

    def transaction(self, document_id: str) -> AbstractAsyncContextManager[DocumentTransaction]:
        """Open a mutually exclusive read-modify-write scope for one document.

        Concurrent transactions on the same document run one after another;
        different documents do not block each other. Staged changes are
        discarded if the block raises.

        Args:
            document_id: Document ID

        Returns:
            Async context manager yielding the transaction
        """
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...

"""In-memory implementations of repository interfaces."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from backend.esign.db.locks import KeyedLocks
from backend.esign.db.repositories import RetryAfter
from backend.esign.models.document import Document


class InMemoryTransaction:
    """Transaction over a private copy of one document."""

    def __init__(self, document: Document | None) -> None:
        self.document = document
        self.staged: Document | None = None

    async def save(self, document: Document) -> None:
        """Stage the new document state."""
        self.staged = document.model_copy(deep=True)


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._locks = KeyedLocks()

    async def open(self) -> None:
        """Nothing to connect."""

    async def close(self) -> None:
        """Nothing to release."""

    async def ping(self) -> bool:
        return True

    async def create(self, document: Document) -> None:
        """Insert a new document."""
        async with self._locks.hold(document.id):
            if document.id in self._documents:
                raise ValueError(f"Document {document.id} already exists")
            self._documents[document.id] = document.model_copy(deep=True)

    async def get(self, document_id: str) -> Document | None:
        """Get document by ID (a copy; mutating it does not touch the store)."""
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document is not None else None

    @asynccontextmanager
    async def transaction(self, document_id: str) -> AsyncIterator[InMemoryTransaction]:
        """Serialize read-modify-write on one document."""
        async with self._locks.hold(document_id):
            current = self._documents.get(document_id)
            tx = InMemoryTransaction(current.model_copy(deep=True) if current else None)
            yield tx
            if tx.staged is not None:
                self._documents[document_id] = tx.staged


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window = self._windows.get(key)
        window_length = timedelta(seconds=self._window_seconds)

        if window is None or now >= window[0] + window_length:
            self._windows[key] = (now, 1)
            return None

        window_start, count = window
        if count >= self._max_requests:
            seconds_remaining = int((window_start + window_length - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None

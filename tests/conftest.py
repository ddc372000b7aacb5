"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from backend.esign.config import Settings
from backend.esign.db.engine import create_async_engine_from_url
from backend.esign.db.inmemory import InMemoryDocumentStore
from backend.esign.db.models import Base
from backend.esign.db.sql_repositories import SqlDocumentStore
from backend.esign.main import create_app
from backend.esign.models.common import DocumentKind, SigningMode
from backend.esign.models.requests import DocumentCreate, SignerInput
from backend.esign.signing.state_machine import SigningService

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now += timedelta(seconds=1)
        return current


@pytest.fixture
def contract_request() -> DocumentCreate:
    """Two-party contract create request."""
    return DocumentCreate(
        kind=DocumentKind.contract,
        title="Hợp đồng thuê nhà",
        content="<p>Điều 1. Bên A cho Bên B thuê căn hộ.</p><p>Điều 2. Giá thuê 5.000.000 đồng/tháng.</p>",
        metadata={"location": "Hà Nội", "created_date": "14/03/2025", "contract_number": "HD-001"},
        signing_mode=SigningMode.public,
        signers=[
            SignerInput(role="Bên A", name="Nguyễn Văn A"),
            SignerInput(role="Bên B", name="Trần Thị B"),
        ],
    )


@pytest.fixture
def make_service() -> Callable[..., SigningService]:
    """Factory for a SigningService over a fresh in-memory store."""

    def _make(**kwargs: object) -> SigningService:
        store = kwargs.pop("store", None) or InMemoryDocumentStore()
        return SigningService(store, now_fn=StepClock(), **kwargs)  # type: ignore[arg-type]

    return _make


@pytest_asyncio.fixture
async def sqlite_store() -> AsyncGenerator[SqlDocumentStore, None]:
    """SQL document store on in-memory sqlite (aiosqlite)."""
    store = SqlDocumentStore(
        create_async_engine_from_url("sqlite+aiosqlite:///:memory:"), create_tables=True
    )
    await store.open()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup: drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def make_client() -> Iterator[Callable[..., TestClient]]:
    """Factory for a started TestClient over an in-memory app.

    Keyword arguments override Settings fields.
    """
    clients: list[TestClient] = []

    def _make(**overrides: object) -> TestClient:
        settings = Settings(database_url=None, redis_url=None, **overrides)  # type: ignore[arg-type]
        client = TestClient(create_app(settings, store=InMemoryDocumentStore()))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    """Started TestClient with default settings."""
    return make_client()

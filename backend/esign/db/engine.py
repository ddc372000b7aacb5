"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.esign.config import Settings


def normalize_async_url(database_url: str) -> str:
    """Map sync driver URLs onto their async drivers."""
    # Convert postgresql:// to postgresql+asyncpg://
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_async_engine_from_url(database_url: str) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    In-memory sqlite shares one connection so every session sees the same
    database.
    """
    database_url = normalize_async_url(database_url)

    if is_sqlite(database_url) and (":memory:" in database_url or database_url.endswith("://")):
        return create_async_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_async_engine(database_url, pool_pre_ping=True, echo=False)


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )
    return create_async_engine_from_url(settings.database_url)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: Async SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False)

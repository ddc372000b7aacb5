"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI

from backend.esign.api.routes.documents import router as documents_router
from backend.esign.api.routes.health import router as health_router
from backend.esign.api.routes.metrics import router as metrics_router
from backend.esign.api.routes.receipts import router as receipts_router
from backend.esign.config import Settings, get_settings
from backend.esign.db.engine import create_async_engine_from_settings, is_sqlite
from backend.esign.db.inmemory import InMemoryDocumentStore, InMemoryRateLimiter
from backend.esign.db.repositories import DocumentStore, RateLimiter
from backend.esign.db.sql_repositories import SqlDocumentStore
from backend.esign.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.esign.pdf.export import PdfExporter
from backend.esign.pdf.structured import RenderOptions
from backend.esign.ratelimit import RedisRateLimiter
from backend.esign.signing.state_machine import SigningService
from backend.esign.utils.logging import StructuredSigningLogger
from backend.esign.utils.metrics import PrometheusExportMetrics, PrometheusSigningMetrics

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def build_store(settings: Settings) -> DocumentStore:
    """SQL store when DATABASE_URL is set, in-memory otherwise."""
    if settings.database_url:
        return SqlDocumentStore(
            create_async_engine_from_settings(settings),
            create_tables=is_sqlite(settings.database_url),
        )
    return InMemoryDocumentStore()


def build_rate_limit(settings: Settings) -> RateLimitMiddleware:
    """One limiter per bucket, Redis-backed when REDIS_URL is set."""
    quotas = {
        "sign": settings.sign_ops_per_min,
        "export": settings.export_ops_per_min,
        "crud": settings.crud_ops_per_min,
        "render": settings.render_ops_per_min,
    }
    limiters: dict[str, RateLimiter]
    if settings.redis_url:
        client = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
        limiters = {bucket: RedisRateLimiter(client, quota) for bucket, quota in quotas.items()}
    else:
        limiters = {bucket: InMemoryRateLimiter(quota) for bucket, quota in quotas.items()}
    return RateLimitMiddleware(limiters, create_default_bucket_map())


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings (default: from environment)
        store: Document store override (default: built from settings)

    Returns:
        FastAPI app whose lifespan opens and closes the store
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        document_store = store or build_store(settings)
        await document_store.open()
        logger.info(f"[app] store={type(document_store).__name__} opened")

        app.state.settings = settings
        app.state.store = document_store
        app.state.signing_service = SigningService(
            document_store,
            metrics=PrometheusSigningMetrics(),
            event_logger=StructuredSigningLogger(),
            default_signer_policy=settings.default_signer_policy,
        )
        app.state.exporter = PdfExporter(
            timeout_seconds=settings.pdf_timeout_seconds,
            options=RenderOptions(
                font_path=settings.pdf_font_path,
                include_header=settings.pdf_include_header,
            ),
            metrics=PrometheusExportMetrics(),
        )
        app.state.rate_limit = build_rate_limit(settings)
        try:
            yield
        finally:
            await document_store.close()
            logger.info("[app] store closed")

    app = FastAPI(title="E-Sign API", version=VERSION, lifespan=lifespan)

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(documents_router)
    app.include_router(receipts_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "E-Sign API", "version": VERSION}

    return app


app = create_app()

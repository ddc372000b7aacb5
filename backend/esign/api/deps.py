"""FastAPI dependencies: lifespan-managed services and rate limiting."""

from typing import Annotated

from fastapi import Depends, Request

from backend.esign.api.auth import get_current_context
from backend.esign.api.errors import to_http_exception
from backend.esign.config import Settings
from backend.esign.db.context import RequestContext
from backend.esign.db.repositories import DocumentStore
from backend.esign.middleware.ratelimit import RateLimitMiddleware
from backend.esign.pdf.export import PdfExporter
from backend.esign.signing.errors import RateLimitedError
from backend.esign.signing.state_machine import SigningService


def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with."""
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    """Document store opened by the application lifespan."""
    return request.app.state.store


def get_signing_service(request: Request) -> SigningService:
    return request.app.state.signing_service


def get_exporter(request: Request) -> PdfExporter:
    return request.app.state.exporter


def get_rate_limit(request: Request) -> RateLimitMiddleware:
    return request.app.state.rate_limit


async def enforce_rate_limit(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    rate_limit: Annotated[RateLimitMiddleware, Depends(get_rate_limit)],
) -> RequestContext:
    """Check the caller's quota for the request path's bucket.

    Returns:
        The request context, so routes can depend on this instead of auth

    Raises:
        HTTPException: 429 with Retry-After when over quota
    """
    allowed, retry_after = rate_limit.check_rate_limit(request.url.path, ctx)
    if not allowed:
        raise to_http_exception(RateLimitedError(retry_after))
    return ctx

"""Health check endpoints.

- /health: liveness, always 200
- /healthz: document store and Redis connectivity, 503 when degraded
"""

import json
from typing import Annotated, Any

import redis
from fastapi import APIRouter, Depends, Response

from backend.esign.api.deps import get_app_settings, get_store
from backend.esign.config import Settings
from backend.esign.db.repositories import DocumentStore

router = APIRouter()


async def check_store(store: DocumentStore) -> tuple[bool, str]:
    """Check document store connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        if await store.ping():
            return (True, "ok")
        return (False, "unreachable")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    store: Annotated[DocumentStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if the store and Redis are reachable
        503 otherwise
    """
    store_ok, store_status = await check_store(store)
    redis_ok, redis_status = await check_redis(settings)

    core_ok = store_ok and redis_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "store": store_status,
            "redis": redis_status,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body

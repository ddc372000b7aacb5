"""Minimal auth dependency.

Stub implementation: identity comes from a ``Bearer <user_id>`` header.
Requests without a header are anonymous, which Public documents allow for
signing.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from backend.esign.db.context import RequestContext


async def get_current_context(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Args:
        request: Incoming request (for the client address)
        authorization: Authorization header (e.g., "Bearer <user_id>")

    Returns:
        RequestContext with user_id (None when anonymous) and client_ip

    Raises:
        HTTPException: If authorization is present but invalid
    """
    client_ip = request.client.host if request.client else None

    if not authorization:
        return RequestContext(user_id=None, client_ip=client_ip)

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "

    try:
        user_id = uuid.UUID(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format (expected user id)",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return RequestContext(user_id=user_id, client_ip=client_ip)


async def require_authenticated(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
) -> RequestContext:
    """Reject anonymous callers.

    Raises:
        HTTPException: 401 if no identity was supplied
    """
    if not ctx.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx

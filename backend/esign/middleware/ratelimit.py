"""Rate limiting middleware."""

from datetime import datetime, timezone

from backend.esign.db.context import RequestContext
from backend.esign.db.repositories import RateLimiter
from backend.esign.ratelimit import make_rate_limit_key


class RateLimitMiddleware:
    """Maps request paths to buckets and enforces each bucket's limiter.

    Patterns are path segments, checked in insertion order, so
    ``/documents/{id}/sign`` lands in the sign bucket before the generic
    documents bucket.
    """

    def __init__(self, limiters: dict[str, RateLimiter], bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiters: Rate limiter per bucket name
            bucket_map: Mapping from path segments to bucket names
        """
        self._limiters = limiters
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, path: str, ctx: RequestContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            path: Request path
            ctx: Request context
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.now(timezone.utc)

        bucket = self.get_bucket(path)
        limiter = self._limiters.get(bucket) if bucket else None
        if limiter is None:
            # No rate limit for this path
            return (True, 0)

        key = make_rate_limit_key(ctx, bucket)
        retry_after = limiter.check_quota(key, now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def get_bucket(self, path: str) -> str | None:
        """Get bucket name for path, or None if the path is not limited."""
        segments = set(path.strip("/").split("/"))
        for pattern, bucket in self._bucket_map.items():
            if pattern.strip("/") in segments:
                return bucket

        return None


def create_default_bucket_map() -> dict[str, str]:
    """Create default bucket mapping.

    Returns:
        Dictionary mapping path segments to bucket names
    """
    return {
        "/sign": "sign",
        "/export-pdf": "export",
        "/signers": "render",
        "/documents": "crud",
        "/receipts": "crud",
    }

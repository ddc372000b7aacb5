"""Request context for identity-dependent decisions."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller.

    ``user_id`` is None for anonymous requests (public signing links).
    """

    user_id: UUID | None = None
    client_ip: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

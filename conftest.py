"""Global pytest configuration."""

import os

# Default to in-memory sqlite and no Redis before settings load
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.pop("REDIS_URL", None)

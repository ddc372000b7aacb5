"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (unset -> in-memory document store)
    database_url: str | None = None

    # Cache (unset -> in-memory rate limiter)
    redis_url: str | None = None

    # PDF export
    pdf_timeout_seconds: float = 30.0
    pdf_font_path: str | None = None
    pdf_include_header: bool = True

    # Signer resolution when a sign request names no signer
    default_signer_policy: Literal["reject", "sender", "first_unsigned"] = "reject"

    # Roles used when a legacy payload carries signatures but no signer list
    legacy_default_roles: list[str] = ["Bên A", "Bên B"]

    # Rate limiting (requests per minute)
    sign_ops_per_min: int = 20
    export_ops_per_min: int = 10
    crud_ops_per_min: int = 60
    render_ops_per_min: int = 120


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

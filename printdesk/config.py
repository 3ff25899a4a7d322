"""
PrintDesk - Configuration

Settings are read from os.environ via pydantic-settings. Nothing is loaded
from disk automatically; call load_environment() first if a .env file should
be honored (local development only).

Presence of a value drives behavior more than its content:
  S3_BUCKET / S3_REGION / S3_ACCESS_KEY_ID / S3_SECRET_ACCESS_KEY
      all four present  -> object-store mode (presigned URLs)
      any one missing   -> upload/view URLs fail with ConfigurationError,
                           PUT /api/local-upload becomes available
  SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
      present           -> Supabase tables back the document store
      missing           -> in-memory store (dev/staging), startup error (prod)
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # =========================================================================
    # ENVIRONMENT CONTROL
    # =========================================================================

    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(default="dev")
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # =========================================================================
    # DOCUMENT STORE (Supabase)
    # =========================================================================

    SUPABASE_URL: str = Field(default="")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(default="")

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    SUPABASE_JWT_SECRET: str | None = Field(default=None)
    ROLE_CLAIM_MAX_AGE_SECONDS: int = Field(default=3600, ge=0)
    AUTH_DEV_BYPASS: bool = Field(default=False)

    # =========================================================================
    # OBJECT STORE (S3)
    # Legacy names are still honored so older deployments keep working.
    # =========================================================================

    S3_BUCKET: str = Field(
        default="", validation_alias=AliasChoices("S3_BUCKET", "BUCKET_NAME")
    )
    S3_REGION: str = Field(
        default="", validation_alias=AliasChoices("S3_REGION", "AWS_REGION")
    )
    S3_ACCESS_KEY_ID: str = Field(
        default="",
        validation_alias=AliasChoices("S3_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
    )
    S3_SECRET_ACCESS_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("S3_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"),
    )

    ARTIFACT_UPLOAD_URL_TTL_SECONDS: int = Field(default=60, gt=0)
    ARTIFACT_VIEW_URL_TTL_SECONDS: int = Field(default=60, gt=0)
    LOCAL_UPLOAD_DIR: str = Field(default="public/uploads")

    # =========================================================================
    # ORDER PIPELINE
    # =========================================================================

    UNKNOWN_STAGE_POLICY: Literal["permissive", "strict"] = Field(default="permissive")

    # =========================================================================
    # UPSTREAM ORDER SOURCE (WooCommerce)
    # =========================================================================

    WOOCOMMERCE_SITE_URL: str = Field(default="")
    WOOCOMMERCE_CONSUMER_KEY: str = Field(default="")
    WOOCOMMERCE_CONSUMER_SECRET: str = Field(default="")
    WOOCOMMERCE_SYNC_PAGE_SIZE: int = Field(default=20, gt=0, le=100)
    WOOCOMMERCE_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)

    # =========================================================================
    # SERVER
    # =========================================================================

    PRINTDESK_CORS_ORIGINS: str | None = Field(default=None)
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # =========================================================================
    # DERIVED PROPERTIES
    # =========================================================================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "dev"

    @property
    def object_store_configured(self) -> bool:
        """All four S3 values are required together."""
        return all(
            value.strip()
            for value in (
                self.S3_BUCKET,
                self.S3_REGION,
                self.S3_ACCESS_KEY_ID,
                self.S3_SECRET_ACCESS_KEY,
            )
        )

    @property
    def document_store_configured(self) -> bool:
        return bool(self.SUPABASE_URL.strip() and self.SUPABASE_SERVICE_ROLE_KEY.strip())

    @property
    def order_source_configured(self) -> bool:
        return bool(
            self.WOOCOMMERCE_SITE_URL.strip()
            and self.WOOCOMMERCE_CONSUMER_KEY.strip()
            and self.WOOCOMMERCE_CONSUMER_SECRET.strip()
        )

    @property
    def cors_allowed_origins(self) -> list[str]:
        """
        Parse PRINTDESK_CORS_ORIGINS into a list.

        Missing or empty means deny all.
        """
        if self.PRINTDESK_CORS_ORIGINS:
            raw = self.PRINTDESK_CORS_ORIGINS.replace(",", " ")
            origins = [o.strip().rstrip("/") for o in raw.split() if o.strip().startswith("http")]
            if origins:
                return origins
        return []


# =========================================================================
# LOADING
# =========================================================================


def load_environment(env_file: str | Path | None = None) -> bool:
    """
    Load a .env file into os.environ without overriding existing values.

    Returns True if a file was found and loaded.
    """
    from dotenv import load_dotenv

    path = Path(env_file) if env_file else Path.cwd() / ".env"
    if not path.is_file():
        return False
    load_dotenv(path, override=False)
    logger.info("Loaded environment from %s", path)
    return True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def reset_settings() -> None:
    """Clear the cached settings (tests, environment switch)."""
    get_settings.cache_clear()


def log_startup_diagnostics(settings: Settings | None = None) -> dict[str, Any]:
    """Log the effective, non-secret configuration and return it."""
    settings = settings or get_settings()
    summary = {
        "environment": settings.ENVIRONMENT,
        "log_level": settings.LOG_LEVEL,
        "document_store": "supabase" if settings.document_store_configured else "memory",
        "object_store": "s3" if settings.object_store_configured else "not_configured",
        "order_source": "woocommerce" if settings.order_source_configured else "not_configured",
        "jwt_secret": "set" if settings.SUPABASE_JWT_SECRET else "missing",
        "unknown_stage_policy": settings.UNKNOWN_STAGE_POLICY,
        "pid": os.getpid(),
    }
    logger.info("╔══════════════════════════════════════════════╗")
    logger.info("║  PrintDesk Startup Diagnostics")
    logger.info("╠══════════════════════════════════════════════╣")
    for key, value in summary.items():
        logger.info(f"║  {key:<22} {value}")
    logger.info("╚══════════════════════════════════════════════╝")
    return summary


__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "load_environment",
    "log_startup_diagnostics",
]

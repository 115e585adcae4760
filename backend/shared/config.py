"""
Centralized configuration for the Salesdesk backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., STRIPE_*, SUPABASE_*).
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Salesdesk API"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Storage back end ("memory" keeps everything in-process, for local runs)
    storage_backend: Literal["supabase", "memory"] = "supabase"

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_db_url: str = ""
    supabase_storage_bucket: str = "uploads"

    # Redis (shared rate-limit windows and job store); empty disables
    redis_url: str = ""

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_store_timeout_seconds: float = 0.5
    # Reverse proxies in front of the API; X-Forwarded-For is read from the right
    trusted_proxy_count: int = 1

    # Quota
    quota_store_timeout_seconds: float = 2.0

    # Background jobs
    job_store_backend: Literal["memory", "redis"] = "memory"
    job_retention_seconds: int = 3600
    job_sweep_interval_seconds: int = 900

    # Uploads
    max_spreadsheet_bytes: int = 10 * 1024 * 1024
    max_image_bytes: int = 5 * 1024 * 1024

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_base: str = ""
    stripe_price_enterprise: str = ""
    stripe_currency: str = "myr"

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:3000"

    # LLM Provider API Keys
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_vision_model: str = "gpt-4o"
    llm_timeout_seconds: float = 60.0

    # Push notifications
    onesignal_app_id: str = ""
    onesignal_api_key: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./ugc_rewards.db"
    tracing_enabled: bool = False
    tracing_excluded_urls: str = "healthz,readyz"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None

    # Public application URLs (links embedded in customer emails)
    app_url: str = "http://localhost:3000"

    # Invitation / upload tokens
    invitation_token_secret: str = "change-me"
    invitation_token_ttl_days: int = 7
    upload_token_ttl_days: int = 7

    # Shopify app credentials
    shopify_client_id: str = ""
    shopify_client_secret: str = ""
    shopify_webhook_secret: str = ""
    shopify_redirect_uri: str = ""
    shopify_api_version: str = "2024-01"
    shopify_request_timeout_seconds: float = 15.0
    shopify_scopes: list[str] = Field(
        default_factory=lambda: [
            "read_customers",
            "write_customers",
            "read_orders",
            "write_discounts",
            "read_discounts",
            "write_gift_cards",
        ]
    )
    reward_discount_validity_days: int = 30

    @field_validator("shopify_scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    # Video object storage (S3 compatible, e.g. Cloudflare R2)
    storage_bucket: str | None = None
    storage_endpoint: str | None = None
    storage_region: str = "auto"
    storage_access_key_id: str | None = None
    storage_secret_access_key: str | None = None
    storage_public_base_url: str = ""
    storage_force_path_style: bool = False
    storage_upload_url_ttl_seconds: int = 3600
    storage_max_upload_bytes: int = 100 * 1024 * 1024

    # Email / notification settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_sender_email: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()

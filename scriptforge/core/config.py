from functools import lru_cache
from secrets import token_urlsafe
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_v1_prefix: str = "/v1"
    project_name: str = "ScriptForge AI API"
    app_env: str = "development"
    cors_origins: List[str] = []
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web client, used for checkout redirects",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async connection string for the primary database",
    )

    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Render structlog events as JSON")

    auth_jwt_key: str = Field(
        default_factory=lambda: token_urlsafe(32),
        description="HMAC secret or PEM public key used to verify identity provider tokens",
    )
    auth_jwt_algorithms: List[str] = Field(default_factory=lambda: ["HS256"])
    auth_jwt_issuer: str | None = Field(
        default=None, description="Expected `iss` claim; skipped when unset"
    )
    auth_jwt_audience: str | None = Field(
        default=None, description="Expected `aud` claim; skipped when unset"
    )
    access_token_expire_minutes: int = Field(default=60, ge=1)

    admin_emails: str = Field(
        default="", description="Comma separated emails of master administrators"
    )
    admin_user_ids: str = Field(
        default="", description="Comma separated identity subjects of master administrators"
    )

    rate_limit_requests_per_minute: int = Field(default=100, ge=1)
    rate_limit_window_seconds: int = Field(default=900, ge=1)
    ai_generation_rate_limit: int = Field(default=5, ge=1)
    ai_generation_window_seconds: int = Field(default=60, ge=1)
    subscription_cycle_days: int = Field(default=30, ge=1)

    plan_scripts_quota_free: int = Field(default=2, ge=-1)
    plan_scripts_quota_pro: int = Field(default=50, ge=-1)
    plan_scripts_quota_business: int = Field(default=200, ge=-1)
    plan_scripts_quota_enterprise: int = Field(
        default=-1, ge=-1, description="Monthly script allowance, -1 for unlimited"
    )

    openai_api_key: str | None = None
    openai_model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    openai_timeout_seconds: float = Field(default=120.0, gt=0)
    script_max_tokens: int = Field(default=4000, ge=256)
    script_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    title_pack_max_tokens: int = Field(default=2000, ge=256)
    title_pack_temperature: float = Field(default=0.8, ge=0.0, le=2.0)

    youtube_http_timeout_seconds: float = Field(default=10.0, gt=0)
    hooks_dataset_path: str | None = Field(
        default=None,
        description="Optional path to a hooks JSON file overriding the packaged dataset",
    )

    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_price_pro_monthly: str | None = None
    stripe_price_business_monthly: str | None = None
    stripe_price_enterprise_monthly: str | None = None

    enable_prometheus_metrics: bool = Field(
        default=True, description="Expose Prometheus metrics endpoint when true"
    )
    prometheus_metrics_path: str = Field(
        default="/metrics/prometheus",
        description="Path where scraped Prometheus metrics are served",
    )
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP HTTP endpoint for exporting traces",
    )
    otel_exporter_otlp_headers: str | None = Field(
        default=None,
        description="Comma separated key=value pairs added to OTLP requests",
    )
    otel_service_name: str | None = Field(
        default=None, description="Optional override for OpenTelemetry service.name"
    )

    @property
    def admin_email_list(self) -> list[str]:
        return [item.strip().lower() for item in self.admin_emails.split(",") if item.strip()]

    @property
    def admin_user_id_list(self) -> list[str]:
        return [item.strip() for item in self.admin_user_ids.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()

"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache), single instance per process
    - Admin-editable values are only seeds: RuntimeSettings owns them after startup

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box locally
    - Nested payment accounts parsed from JSON env values
      (e.g. PAYMENT_ACCOUNTS='{"dana": {"number": "0812...", "holder": "Shop"}}')
"""

from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaymentAccountConfig(BaseModel):
    """Manual transfer destination for one e-wallet or bank."""
    number: str
    holder: str


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "postgresql+asyncpg://chatshop:chatshop@db:5432/chatshop"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    auto_create_schema: bool = False

    # Shop
    shop_name: str = "ChatShop"
    support_contact: str = "the admin on this number"
    usd_to_idr_rate: int = 15_800
    session_timeout_minutes: int = 30
    low_stock_threshold: int = 5
    maintenance_mode: bool = False
    maintenance_message: str = "We are doing some maintenance. Please try again later."
    admin_numbers: list[str] = []
    delivery_codes_dir: str | None = None
    sweep_interval_seconds: int = 60
    # /stats "Today" starts at midnight in this zone
    shop_timezone: str = "Asia/Jakarta"

    @field_validator("shop_timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone: {v}") from e
        return v

    # Abuse guard
    message_limit: int = 20
    message_window_seconds: int = 60
    order_limit_per_day: int = 5
    error_threshold: int = 3
    error_cooldown_seconds: int = 60

    # Payment gateway
    gateway_base_url: str = "https://api.xendit.co"
    gateway_secret_key: str = "xnd-placeholder"
    gateway_timeout_seconds: float = 10.0
    gateway_max_retries: int = 2
    gateway_retry_interval_seconds: float = 1.0
    payment_accounts: dict[str, PaymentAccountConfig] = {}

    # Cache
    cache_products_ttl_seconds: int = 300
    cache_settings_ttl_seconds: int = 600

    # Anthropic
    ai_enabled: bool = False
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_model: str = "claude-3-5-haiku-latest"
    anthropic_max_tokens: int = 300
    anthropic_max_retries: int = 2
    anthropic_timeout_seconds: int = 30
    anthropic_base_delay_ms: int = 500
    anthropic_max_delay_ms: int = 8_000

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def runtime_seed(self) -> dict[str, Any]:
        """Initial values for the admin-editable RuntimeSettings."""
        return {
            "shop_name": self.shop_name,
            "usd_to_idr_rate": self.usd_to_idr_rate,
            "message_limit": self.message_limit,
            "order_limit_per_day": self.order_limit_per_day,
            "session_timeout_minutes": self.session_timeout_minutes,
            "low_stock_threshold": self.low_stock_threshold,
            "maintenance_mode": self.maintenance_mode,
            "maintenance_message": self.maintenance_message,
            "ai_enabled": self.ai_enabled,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
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
    app_name: str = "Tripseat"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "tripseat"
    postgres_password: str = Field(default="tripseat_secret")
    postgres_db: str = "tripseat"
    db_pool_size: int = 20
    db_max_overflow: int = 10

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT verification (tokens are issued by the auth service)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15

    # Payment gateway
    payment_gateway: Literal["paystack", "manual"] = "paystack"
    paystack_secret_key: Optional[str] = None
    paystack_base_url: str = "https://api.paystack.co"
    gateway_timeout_seconds: float = 15.0
    payment_callback_url: str = "http://localhost:3000/booking/success"
    currency: str = "NGN"

    # Booking
    booking_hold_minutes: int = 15
    hold_verify_grace_minutes: int = 15
    max_seats_per_booking: int = 6
    default_seat_layout: Literal["front_row", "grid4"] = "front_row"
    default_max_passengers: int = 7
    booking_reference_prefix: str = "BK"

    # Hold-expiry sweeper (in-process, alternative to Celery beat)
    hold_sweeper_enabled: bool = False
    hold_sweep_interval_seconds: int = 60

    # Rate limiting
    rate_limit_window_minutes: int = 15
    rate_limit_booking_create: int = 10
    rate_limit_payment_init: int = 5
    rate_limit_retention_hours: int = 24

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    sentry_dsn: Optional[str] = None

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:3001"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

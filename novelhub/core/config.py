"""
Application configuration.
All settings are loaded from environment variables (or .env).
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: connection strings have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma separated list of origins. Empty = default list in main.py.
    cors_origins: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default

    # Retry policy for serialization failures / deadlocks between concurrent unlock passes
    transaction_max_retries: int = 3
    transaction_retry_backoff_seconds: float = 0.05

    # ===========================================
    # REDIS (cache + realtime events)
    # ===========================================
    redis_url: str  # Required, no default
    cache_key_prefix: str = "novelhub"
    events_channel: str = "novelhub:events"

    # ===========================================
    # BUDGET / UNLOCK
    # ===========================================
    contribution_min_amount: int = 10
    # rent_balance = sum(paid chapter price) // rent_price_divisor
    rent_price_divisor: int = 10
    rental_duration_hours: int = 24

    # Contribution history pages
    history_default_limit: int = 50
    history_max_limit: int = 200

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_sql: bool = False
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator("contribution_min_amount", "rent_price_divisor", "rental_duration_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be a standard logging level name")
        return v.upper()

    @field_validator("transaction_max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("transaction_max_retries must be >= 0")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()

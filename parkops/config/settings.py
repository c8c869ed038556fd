"""Configuration settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_lock_ttl_seconds: int = 5
    redis_lock_wait_seconds: float = 2.0

    # UPI payment presentation
    upi_merchant_vpa: str = "merchant@upi"
    upi_payee_name: str = "ParkOps"
    currency_code: str = "INR"

    # Logging
    log_level: str = "INFO"

    # Application
    app_name: str = "parkops"
    environment: str = "development"

    # Health server
    health_host: str = "127.0.0.1"
    health_port: int = 8000


def load_settings() -> Settings:
    """Load and validate settings from environment."""
    return Settings()  # type: ignore[call-arg]

"""All settings, loaded from the .env file."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_url: str = "http://localhost:8000"
    environment: str = "development"  # development | production | test
    log_level: str = "INFO"
    secret_key: str = "change-me"
    database_url: str = "sqlite:///./rfq_tracker.db"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Auth (bearer tokens expire after 30 days)
    token_max_age_seconds: int = 30 * 24 * 3600

    # RFQ defaults
    default_margin: float = 15.0
    default_confidence: int = 50
    rfq_id_prefix: str = "RFQ"
    rfq_id_width: int = 3

    # Display
    currency_symbol: str = "₹"
    display_timezone: str = "Asia/Kolkata"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

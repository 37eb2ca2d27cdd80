from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./tourbook.db",
        alias="DATABASE_URL"
    )

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        alias="ALLOWED_ORIGINS"
    )

    # Reference timezone for "today" / "tomorrow" (booking dates are calendar dates)
    timezone: str = Field(default="Europe/Lisbon", alias="TIMEZONE")

    # ==============================================
    # Booking rules
    # ==============================================
    # When enabled, creating a booking re-checks the date under a per-date lock
    # and the losing concurrent request gets 409 instead of a duplicate booking.
    strict_date_exclusivity: bool = Field(default=False, alias="STRICT_DATE_EXCLUSIVITY")

    # Shared secret for the reminders endpoint. Empty = endpoint is open.
    cron_secret: str = Field(default="", alias="CRON_SECRET")

    # Max reminder e-mails in flight at once
    reminder_concurrency: int = Field(default=10, alias="REMINDER_CONCURRENCY")

    # ==============================================
    # Tour catalog (CMS)
    # ==============================================
    tour_catalog_url: str = Field(default="", alias="TOUR_CATALOG_URL")
    tour_catalog_token: str = Field(default="", alias="TOUR_CATALOG_TOKEN")
    tour_catalog_timeout_seconds: float = Field(default=10.0, alias="TOUR_CATALOG_TIMEOUT_SECONDS")
    # JSON file with tours, used when no catalog URL is configured (local development)
    tours_file: str = Field(default="", alias="TOURS_FILE")

    # ==============================================
    # E-mail (Resend)
    # ==============================================
    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    resend_base_url: str = Field(default="https://api.resend.com", alias="RESEND_BASE_URL")
    email_from: str = Field(default="bookings@localhost", alias="EMAIL_FROM")
    operator_email: str = Field(default="", alias="OPERATOR_EMAIL")
    email_timeout_seconds: float = Field(default=10.0, alias="EMAIL_TIMEOUT_SECONDS")

    # ==============================================
    # Logging / rate limiting
    # ==============================================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")

    @field_validator('database_url')
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosting providers hand out postgres://, SQLAlchemy needs postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator('reminder_concurrency')
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("REMINDER_CONCURRENCY must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins or ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

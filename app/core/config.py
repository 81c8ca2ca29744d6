"""
Application configuration for the Daycare Attendance Service.

Settings are loaded from environment variables (or a local .env file) and
exposed through the module-level ``settings`` singleton.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    APP_NAME: str = "daycare-attendance-service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./attendance.db"
    DATABASE_ECHO: bool = False

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Kafka
    KAFKA_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_CLIENT_ID: str = "daycare-attendance-service"

    # Actor Gateway (identity / session resolution)
    ACTOR_GATEWAY_URL: str = "http://localhost:8001"
    ACTOR_GATEWAY_TIMEOUT: float = 10.0

    # Facility
    FACILITY_TIMEZONE: str = "America/Chicago"
    PIN_HASH_SECRET: str = "change-me"

    # Reporting
    MAX_REPORT_RANGE_DAYS: int = 62

    # Idempotency keys older than this are ignored and overwritten
    IDEMPOTENCY_TTL_HOURS: int = 24

    @property
    def cors_origins_list(self) -> list[str]:
        """Comma-separated CORS_ORIGINS as a list."""
        return [
            origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

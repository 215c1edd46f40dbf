from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres
    DATABASE_URL: str = "postgresql://localhost:5432/liqa"

    # Bearer token verification
    JWT_SECRET: str | None = None
    JWT_AUDIENCE: str | None = None

    # SendGrid email transport
    SENDGRID_API_KEY: str | None = None
    EMAIL_FROM_ADDRESS: str = "no-reply@liqa.local"
    EMAIL_FROM_NAME: str = "Liqa Platform"

    # Recommendations
    RECOMMENDATION_LIMIT: int = 5
    RECOMMENDATION_TIMEZONE: str = "UTC"

    # Reminders and push notifications
    REMINDER_INTERVAL_SECONDS: float = 60.0
    REMINDER_THRESHOLDS_MINUTES: list[int] = [24 * 60, 60]
    EMAIL_REMINDER_WINDOW_HOURS: int = 24
    BROADCAST_SEND_TIMEOUT_SECONDS: float = 5.0

    # Request context
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # Postgres pool sizing
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_db_pool_config(self) -> dict:
        """psycopg_pool.AsyncConnectionPool keyword arguments; development runs a smaller pool."""
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(min_size=1, max_size=5, timeout=15.0)

        return config

    def email_enabled(self) -> bool:
        return bool(self.SENDGRID_API_KEY)


settings = Settings()

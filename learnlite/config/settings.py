"""
learnlite/config/settings.py
Environment-driven application settings

All configuration is read once from the process environment (a local .env
file is loaded first when present) and exposed through the module-level
``settings`` object.
"""
import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

VALID_ENVIRONMENTS = ("development", "test", "production")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
VALID_SINKS = ("console", "file")

DEV_JWT_SECRET = "dev-secret-key-change-in-production"


class ConfigurationError(Exception):
    """Raised when the environment holds an unusable configuration value."""


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get a positive integer from environment variable, falling back to default."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {key}: {raw!r}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive value for {key}: {value}")
        return default
    return value


def get_list_env(key: str) -> List[str]:
    """Get a comma separated list from environment variable."""
    raw = os.getenv(key, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """
    Application settings.

    Values are captured when the object is created; tests build their own
    instance or patch attributes on the shared one.
    """

    def __init__(self):
        self.environment: str = os.getenv("ENVIRONMENT", "development").lower()
        self.app_name: str = os.getenv("APP_NAME", "learnlite")
        self.api_version: str = os.getenv("API_VERSION", "v1.2")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self.database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./learnlite.db")

        self.jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", DEV_JWT_SECRET)
        self.jwt_algorithm: str = "HS256"
        self.access_token_expire_minutes: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)
        self.bcrypt_rounds: int = get_int_env("BCRYPT_ROUNDS", 10)

        self.allowed_origins: List[str] = get_list_env("ALLOWED_ORIGINS")
        self.rate_limit_enabled: bool = get_bool_env("RATE_LIMIT_ENABLED", True)
        self.login_rate_limit: str = os.getenv("LOGIN_RATE_LIMIT", "20/minute")

        self.notifications_enabled: bool = get_bool_env("NOTIFICATIONS_ENABLED", True)
        self.notifications_worker_enabled: bool = get_bool_env("NOTIFICATIONS_WORKER_ENABLED", False)
        self.notifications_sink: str = os.getenv("NOTIFICATIONS_SINK", "console").lower()
        self.notifications_log_file: str = os.getenv("NOTIFICATIONS_LOG_FILE", "var/notifications.log")
        self.notifications_interval_seconds: int = get_int_env("NOTIFICATIONS_INTERVAL_SECONDS", 5)
        self.notifications_batch_size: int = get_int_env("NOTIFICATIONS_BATCH_SIZE", 50)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def validate(self) -> None:
        """Fail fast on values the application cannot run with."""
        if self.environment not in VALID_ENVIRONMENTS:
            raise ConfigurationError(
                f"ENVIRONMENT must be one of {', '.join(VALID_ENVIRONMENTS)}, got {self.environment!r}"
            )
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {self.log_level!r}"
            )
        if self.notifications_sink not in VALID_SINKS:
            raise ConfigurationError(
                f"NOTIFICATIONS_SINK must be one of {', '.join(VALID_SINKS)}, got {self.notifications_sink!r}"
            )
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL environment variable is not set")
        if self.is_production and (not self.jwt_secret_key or self.jwt_secret_key == DEV_JWT_SECRET):
            raise ConfigurationError("JWT_SECRET_KEY must be set in production")

    def summary(self) -> dict:
        """Redacted view of the configuration for startup logging."""
        return {
            "environment": self.environment,
            "app_name": self.app_name,
            "api_version": self.api_version,
            "log_level": self.log_level,
            "database": self._redacted_database_url(),
            "jwt_secret_key": "set" if self.jwt_secret_key != DEV_JWT_SECRET else "dev-default",
            "rate_limit_enabled": self.rate_limit_enabled,
            "notifications_enabled": self.notifications_enabled,
            "notifications_worker_enabled": self.notifications_worker_enabled,
            "notifications_sink": self.notifications_sink,
        }

    def _redacted_database_url(self) -> Optional[str]:
        url = self.database_url
        if "@" not in url:
            return url
        scheme, _, rest = url.partition("://")
        return f"{scheme}://***@{rest.split('@', 1)[1]}"


settings = Settings()

"""
Settings Module
===============

Environment-driven configuration. Each group reads its own prefix
(``POSTGRES_``, ``REDIS_``, ``KAFKA_``, ``VERIFICATION_``,
``CLEARINGHOUSE_``, ``CELERY_``); top-level fields have no prefix.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ChangeDetectorMode(str, Enum):
    """Which regulatory change detector the clearinghouse sweep uses."""

    NULL = "null"
    SIMULATED = "simulated"
    EXTERNAL = "external"


class PostgresSettings(BaseSettings):
    """Compliance store connection."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "kitchen"
    password: SecretStr = SecretStr("kitchen_dev_password")
    db: str = "kitchen_compliance"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def async_url(self) -> str:
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis for vendor locks; also the default Celery broker."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("kitchen_redis_password")
    db: int = 0

    @property
    def url(self) -> str:
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.db}"


class KafkaSettings(BaseSettings):
    """Outcome and regulatory change event streams."""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = "localhost:9092"
    security_protocol: str = "PLAINTEXT"
    enabled: bool = True


class VerificationSettings(BaseSettings):
    """
    Verification run configuration.

    Business thresholds are kept here so operators can override them
    per deployment without code changes.
    """

    model_config = SettingsConfigDict(env_prefix="VERIFICATION_")

    # Execution
    timeout_seconds: float = Field(default=30.0, gt=0)
    concurrency: int = Field(default=5, ge=1)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: int = 2
    lock_wait_seconds: float = 60.0
    stale_run_minutes: int = 15

    # A checklist at or above this percentage (but not 100) needs review
    needs_review_threshold: int = Field(default=80, ge=0, le=100)

    # Document checks
    expiry_warning_days: int = 30
    expiry_notice_days: list[int] = Field(default_factory=lambda: [30, 60, 90])
    insurance_max_age_days: int = 365

    # Scheduled re-verification
    reverification_max_days: int = 90
    sweep_hour: int = Field(default=2, ge=0, le=23)

    @field_validator("expiry_notice_days")
    @classmethod
    def sort_notice_days(cls, v: list[int]) -> list[int]:
        return sorted(d for d in set(v) if d > 0)


class ClearinghouseSettings(BaseSettings):
    """Regulatory clearinghouse sweep configuration."""

    model_config = SettingsConfigDict(env_prefix="CLEARINGHOUSE_")

    detector: ChangeDetectorMode = ChangeDetectorMode.SIMULATED
    simulated_probability: float = Field(default=0.1, ge=0.0, le=1.0)
    concurrency: int = Field(default=2, ge=1)
    # Hours of day (crontab syntax) in `timezone`
    cron_hours: str = "8,12,20"
    timezone: str = "America/Los_Angeles"

    @field_validator("cron_hours")
    @classmethod
    def check_cron_hours(cls, v: str) -> str:
        """Reject hour lists outside 0-23."""
        hours = [h.strip() for h in v.split(",")]
        if not hours or any(not h.isdigit() or int(h) > 23 for h in hours):
            raise ValueError(f"cron_hours must be comma-separated hours 0-23, got {v!r}")
        return ",".join(hours)


class CelerySettings(BaseSettings):
    """Celery broker overrides; Redis is used when unset."""

    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: str | None = None
    result_backend: str | None = None
    task_always_eager: bool = False


class Settings(BaseSettings):
    """
    Root settings object.

    Use the ``settings`` singleton from ``shared.config`` or call
    ``get_settings()``. Values come from the environment and ``.env``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO
    service_name: str = "kitchen-compliance"

    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)

    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    clearinghouse: ClearinghouseSettings = Field(default_factory=ClearinghouseSettings)
    celery: CelerySettings = Field(default_factory=CelerySettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def broker_url(self) -> str:
        return self.celery.broker_url or self.redis.url

    @property
    def result_backend(self) -> str:
        return self.celery.result_backend or self.redis.url


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()

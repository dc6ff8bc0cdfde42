"""
Settings Module for SiteWatch

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Invalid values fail at load time so a misconfigured service never starts.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class CacheBackend(str, Enum):
    """Supported counter/cache store backends."""
    MEMORY = "memory"
    REDIS = "redis"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class DatabaseSettings(BaseSettingsConfig):
    """
    Database Configuration Settings

    SQLite (development, tests) and PostgreSQL (production) through
    the SQLAlchemy async engine.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Database type: postgresql or sqlite"
    )
    host: str = Field(default="localhost", description="Database host address")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port number")
    name: str = Field(
        default="sitewatch",
        min_length=1,
        max_length=64,
        description="Database name"
    )
    user: str = Field(default="postgres", min_length=1, max_length=64)
    password: SecretStr = Field(default=SecretStr(""), description="Database password")

    sqlite_path: Path = Field(
        default=Path("data/sitewatch.db"),
        description="Path to SQLite database file"
    )

    # Connection pool settings (ignored for SQLite)
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_recycle: int = Field(default=1800, ge=60, le=7200)

    echo: bool = Field(default=False, description="Echo SQL queries (debug mode)")

    @property
    def url(self) -> str:
        """Generate database URL based on configuration."""
        if self.type == DatabaseType.SQLITE:
            return f"sqlite+aiosqlite:///{self.sqlite_path}"

        password = self.password.get_secret_value()
        return (
            f"postgresql+asyncpg://{self.user}:{password}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    @field_validator("sqlite_path")
    @classmethod
    def validate_sqlite_path(cls, v: Path) -> Path:
        """Validate and normalize SQLite path."""
        if not v.suffix:
            v = v.with_suffix(".db")
        return v


class MonitoringSettings(BaseSettingsConfig):
    """
    Health Check Engine Configuration Settings

    Controls the check cadence, the concurrency ceiling of batch cycles,
    probe timeouts, and the retention of the rolling metrics kept in the
    counter/cache store.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    base_interval_minutes: int = Field(
        default=5,
        ge=1,
        le=1440,
        description="Minutes between two batch cycles of the periodic job"
    )
    max_concurrent_checks: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum target pipelines in flight during a batch cycle"
    )
    check_timeout_seconds: float = Field(
        default=15,
        gt=0,
        le=120,
        description="HTTP probe timeout in seconds"
    )
    tls_timeout_seconds: float = Field(
        default=10,
        gt=0,
        le=60,
        description="Upper bound for one TLS validation probe"
    )
    max_trend_history: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Number of latency samples kept per target"
    )
    counter_ttl_days: int = Field(
        default=8,
        ge=1,
        le=365,
        description="Expiry of uptime counters, failure streaks and latency windows"
    )
    ssl_cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        le=604800,
        description="How long a TLS validation result is reused (0 = never cached)"
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow redirects while probing"
    )
    user_agent: str = Field(
        default="SiteWatch/1.0 (Compatible; Health Monitor)",
        description="User agent string for HTTP probes"
    )

    @property
    def counter_ttl_seconds(self) -> int:
        return self.counter_ttl_days * 86400


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings

    Console, rotating file and JSON sinks for loguru.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(default=LogLevel.INFO, description="Minimum logging level")

    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_colored: bool = Field(default=True, description="Enable colored console output")

    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: Path = Field(default=Path("logs/sitewatch.log"), description="Log file path")
    file_rotation: str = Field(default="10 MB", description="Log rotation size or period")
    file_retention: str = Field(default="30 days", description="Log retention period")

    error_file_enabled: bool = Field(default=False, description="Enable separate error log file")
    error_file_path: Path = Field(default=Path("logs/errors.log"))

    json_enabled: bool = Field(default=False, description="Serialize file records as JSON")


class CacheSettings(BaseSettingsConfig):
    """
    Counter/Cache Store Configuration Settings

    In-memory store for single-process deployments and tests, Redis when
    several workers share the rolling metrics.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        extra="ignore"
    )

    backend: CacheBackend = Field(
        default=CacheBackend.MEMORY,
        description="Cache backend: 'memory' or 'redis'"
    )

    redis_url: Optional[str] = Field(default=None, description="Redis connection URL")
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis_password: Optional[SecretStr] = Field(default=None, description="Redis password")
    redis_db: int = Field(default=0, ge=0, le=15, description="Redis database number")
    redis_ssl: bool = Field(default=False, description="Use SSL for Redis connection")

    key_prefix: str = Field(default="sitewatch:", description="Prefix for all cache keys")

    @property
    def redis_connection_url(self) -> str:
        """Generate Redis connection URL."""
        if self.redis_url:
            return self.redis_url

        password_part = ""
        if self.redis_password:
            password_part = f":{self.redis_password.get_secret_value()}@"

        protocol = "rediss" if self.redis_ssl else "redis"

        return f"{protocol}://{password_part}{self.redis_host}:{self.redis_port}/{self.redis_db}"


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    app_name: str = Field(default="SiteWatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_production:
            self.debug = False
            self.database.echo = False
        elif self.is_development and self.debug:
            self.logging.level = LogLevel.DEBUG

        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure a single settings instance
    is used throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()

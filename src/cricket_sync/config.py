"""Configuration management for cricket-sync with safe test defaults."""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Environment(str, Enum):
    """Application environment types."""
    TEST = "TEST"
    DEV = "DEV"
    PROD = "PROD"


class LogFormat(str, Enum):
    """Log renderer selection."""
    JSON = "json"
    TEXT = "text"
    STRUCTURED = "structured"


class AppSettings(BaseSettings):
    """Application settings with safe defaults and dotenv support.

    Environment variables can be set directly or via .env file. The two
    store connection values have no usable default; call
    :meth:`require_store` before doing any work that touches the store.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # ===================
    # Environment
    # ===================
    ENV: Environment = Field(
        default=Environment.TEST,
        description='Application environment: TEST, DEV, or PROD'
    )

    # ===================
    # Store
    # ===================
    STORE_URL: Optional[str] = Field(
        default=None,
        description='PostgreSQL DSN of the analytics store'
    )
    STORE_KEY: Optional[SecretStr] = Field(
        default=None,
        description='Write credential (password) for the store role'
    )
    STORE_POOL_MIN: int = Field(default=1, description='Minimum pool size')
    STORE_POOL_MAX: int = Field(default=5, description='Maximum pool size')
    STORE_COMMAND_TIMEOUT: float = Field(default=60.0, description='Per-statement timeout in seconds')

    # ===================
    # Upstream feed
    # ===================
    FEED_BASE_URL: str = Field(
        default='https://www.wisden.com',
        description='Wisden feed base URL'
    )
    FEED_PROXY_URL: Optional[str] = Field(
        default=None,
        description='Optional relay; targets are sent as ?url=<encoded target>'
    )
    CLIENT_MATCHES: str = Field(default='e656463796', description='Client id for the match list endpoint')
    CLIENT_SCORECARD: str = Field(default='430fdd0d', description='Client id for the scorecard endpoint')

    # ===================
    # HTTP Client
    # ===================
    HTTP_TIMEOUT_S: float = Field(default=15.0, description='HTTP request timeout in seconds')
    USER_AGENT: str = Field(
        default='Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36',
        description='User agent for HTTP requests'
    )

    # ===================
    # Retry & Pacing
    # ===================
    RETRY_MAX: int = Field(default=3, description='Maximum attempts per HTTP request')
    RETRY_BACKOFF_FACTOR: float = Field(default=1.0, description='Exponential backoff multiplier')
    PACING_DELAY_S: float = Field(
        default=0.2,
        description='Fixed delay before each scorecard request'
    )
    PACING_RPS: Optional[float] = Field(
        default=None,
        description='Use a token bucket at this rate instead of the fixed delay'
    )

    # ===================
    # Pipeline
    # ===================
    BATCH_SIZE: int = Field(default=500, description='Rows per store round-trip')
    SYNC_LOOKBACK_DAYS: int = Field(default=30, description='Match list window for sync runs')
    BACKFILL_LOOKBACK_DAYS: int = Field(default=60, description='Window for team stats backfill')
    DEDUPE_CHUNK_SIZE: int = Field(default=50, description='Matches per duplicate-cleanup chunk')

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = Field(default='INFO', description='Logging level')
    LOG_FORMAT: LogFormat = Field(default=LogFormat.TEXT, description='Log format: json, text, or structured')
    LOG_FILE: Optional[Path] = Field(default=None, description='Log file path')

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator('ENV', mode='before')
    @classmethod
    def validate_env(cls, v) -> Environment:
        """Validate and normalize environment value."""
        if isinstance(v, Environment):
            return v
        if isinstance(v, str):
            v_upper = v.upper()
            if v_upper in ('TEST', 'TESTING'):
                return Environment.TEST
            elif v_upper in ('DEV', 'DEVELOPMENT', 'LOCAL'):
                return Environment.DEV
            elif v_upper in ('PROD', 'PRODUCTION'):
                return Environment.PROD
        raise ValueError(f"ENV must be TEST, DEV, or PROD (got: {v})")

    @field_validator('BATCH_SIZE', 'DEDUPE_CHUNK_SIZE', 'RETRY_MAX')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator('PACING_DELAY_S', 'HTTP_TIMEOUT_S')
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.ENV == Environment.TEST

    def require_store(self) -> None:
        """Fail fast when the store connection values are missing.

        Raises:
            ConfigurationError: If STORE_URL or STORE_KEY is unset or blank
        """
        missing = []
        if not (self.STORE_URL or '').strip():
            missing.append('STORE_URL')
        if self.STORE_KEY is None or not self.STORE_KEY.get_secret_value().strip():
            missing.append('STORE_KEY')
        if missing:
            raise ConfigurationError(
                f"Missing required store settings: {', '.join(missing)}"
            )

    def store_password(self) -> Optional[str]:
        """Plain-text store credential, or None when unset."""
        return self.STORE_KEY.get_secret_value() if self.STORE_KEY else None


@lru_cache()
def get_settings() -> AppSettings:
    """Get cached application settings.

    Loads settings from:
    1. Environment variables
    2. .env file (if exists)
    3. Default values

    Returns:
        AppSettings: Cached settings instance
    """
    return AppSettings()

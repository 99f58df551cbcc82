"""
Configuration management using environment variables.
Handles all watcher settings with proper validation and defaults.
"""

from typing import Optional
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatcherConfig(BaseSettings):
    """
    Configuration class for watcher settings.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Tracked resource storage
    state_file: str = Field(default="state/resources.json")

    # Refresh scheduling
    refresh_interval_minutes: int = Field(default=10)
    timezone: str = Field(default="UTC")

    # Fetch configuration
    request_timeout: float = Field(default=30.0)
    retry_attempts: int = Field(default=2)
    retry_delay: float = Field(default=1.0)
    rate_limit_per_second: float = Field(default=5.0)
    max_concurrent_fetches: int = Field(default=5)
    user_agent: str = Field(default="PageWatch/1.0")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="PAGEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('refresh_interval_minutes')
    @classmethod
    def validate_refresh_interval(cls, v):
        """Refresh interval is expressed in whole minutes."""
        if v < 1 or v > 7 * 24 * 60:
            raise ValueError('refresh_interval_minutes must be between 1 and 10080')
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError('request_timeout must be between 1 and 300 seconds')
        return v

    @field_validator('retry_attempts')
    @classmethod
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry_attempts must be between 0 and 10')
        return v

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Ensure rate limit is reasonable."""
        if v < 0.1 or v > 50:
            raise ValueError('rate_limit_per_second must be between 0.1 and 50')
        return v

    @field_validator('max_concurrent_fetches')
    @classmethod
    def validate_concurrent_fetches(cls, v):
        """Ensure concurrent fetches is reasonable."""
        if v < 1 or v > 50:
            raise ValueError('max_concurrent_fetches must be between 1 and 50')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_state_file_path(self) -> Path:
        """Get state file path as Path object."""
        return Path(self.state_file)

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }


# Global configuration instance
config = WatcherConfig()

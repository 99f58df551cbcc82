"""
Settings for the HTTP control API.

Watcher behaviour (state file, interval, fetching) is configured through
utilities.config; this module only covers the HTTP server.
"""

from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """HTTP server settings, read from PAGEWATCH_API_* variables."""

    api_title: str = "PageWatch API"
    api_version: str = "1.0.0"

    # Bind to loopback only unless told otherwise; there is no authentication.
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    access_log: bool = True

    # Run the refresh scheduler inside the API process
    start_monitor: bool = True

    cors_origins: List[str] = ["http://localhost", "http://127.0.0.1"]

    model_config = SettingsConfigDict(
        env_prefix="PAGEWATCH_API_",
        env_file=".env",
        extra="ignore"
    )

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError('port must be between 1 and 65535')
        return v


config = APIConfig()

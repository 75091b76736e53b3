"""Sync client configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for a device running the sync client."""

    api_url: str = Field(default="http://localhost:8000/api/v1", alias="MEDICONTROL_API_URL")
    data_dir: Path = Field(default=Path(".medicontrol"), alias="MEDICONTROL_DATA_DIR")
    sync_interval_seconds: float = Field(
        default=300, gt=0, alias="MEDICONTROL_SYNC_INTERVAL_SECONDS"
    )
    http_timeout_seconds: float = Field(
        default=20.0, gt=0, alias="MEDICONTROL_HTTP_TIMEOUT_SECONDS"
    )
    http_connect_timeout_seconds: float = Field(
        default=10.0, gt=0, alias="MEDICONTROL_HTTP_CONNECT_TIMEOUT_SECONDS"
    )
    notification_cache_size: int = Field(
        default=50, ge=1, alias="MEDICONTROL_NOTIFICATION_CACHE_SIZE"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()

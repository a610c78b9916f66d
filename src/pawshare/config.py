"""
Runtime settings loaded from environment variables.

Environment:
    PAWSHARE_BASE_URL: web app origin hosting ``/api/messages``
    PAWSHARE_SUPABASE_URL: hosted platform origin (``/rest/v1``, ``/auth/v1``)
    PAWSHARE_SUPABASE_ANON_KEY: public API key sent as ``apikey``
    PAWSHARE_REALTIME_URL: Socket.IO relay for row change events
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://www.pawshare.app"


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    base_url: str = DEFAULT_BASE_URL
    supabase_url: str = "https://api.pawshare.app"
    supabase_anon_key: SecretStr = SecretStr("")
    realtime_url: Optional[str] = None

    # Debounce windows, seconds
    unread_insert_debounce: float = Field(default=0.3, gt=0)
    unread_update_debounce: float = Field(default=0.5, gt=0)
    directory_refresh_debounce: float = Field(default=0.5, gt=0)
    mark_read_delay: float = Field(default=1.0, ge=0)

    toast_dismiss_after: float = Field(default=5.0, gt=0)
    ready_timeout: float = 15.0

    model_config = SettingsConfigDict(env_prefix="PAWSHARE_", env_file=".env", extra="ignore")

    @property
    def resolved_realtime_url(self) -> str:
        return (self.realtime_url or self.supabase_url).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()

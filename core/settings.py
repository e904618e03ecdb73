"""Application settings and environment configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
import os
from functools import lru_cache
from typing import Optional


@dataclass
class Settings:
    """Runtime configuration resolved from environment variables."""

    notify_lead_minutes: int = 10
    daily_refresh_at: str = "00:00"
    broadcast_timeout_seconds: float = 5.0
    misfire_grace_seconds: int = 60
    log_level: str = "INFO"
    log_file: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        env_lead = os.getenv("NOTIFY_LEAD_MINUTES")
        env_refresh = os.getenv("DAILY_REFRESH_AT")
        env_timeout = os.getenv("BROADCAST_TIMEOUT_SECONDS")
        env_grace = os.getenv("MISFIRE_GRACE_SECONDS")
        env_level = os.getenv("LOG_LEVEL")
        env_log_file = os.getenv("LOG_FILE")
        env_host = os.getenv("HOST")
        env_port = os.getenv("PORT")
        if env_lead:
            self.notify_lead_minutes = int(env_lead)
        if env_refresh:
            self.daily_refresh_at = env_refresh.strip()
        if env_timeout:
            self.broadcast_timeout_seconds = float(env_timeout)
        if env_grace:
            self.misfire_grace_seconds = int(env_grace)
        if env_level:
            self.log_level = env_level.upper()
        if env_log_file:
            self.log_file = env_log_file
        if env_host:
            self.host = env_host
        if env_port:
            self.port = int(env_port)
        if self.notify_lead_minutes < 0:
            raise ValueError("NOTIFY_LEAD_MINUTES must not be negative")

    @property
    def refresh_time(self) -> time:
        """Local time of day at which the daily refresh fires."""

        return datetime.strptime(self.daily_refresh_at, "%H:%M").time()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()

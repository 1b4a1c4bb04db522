"""
Configuration for the Party Search Watcher

All runtime settings collected in one place. Values come from
config/watch_settings.py (environment / .env backed).
"""

from dataclasses import dataclass
from typing import List

import pytz

from config import watch_settings as settings
from .models import SearchFilter


SCHEDULE_GRAINS = ("minute", "hour")


@dataclass
class WatchConfig:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------
    api_url: str = settings.API_URL
    session_gateway_url: str = settings.SESSION_GATEWAY_URL
    http_timeout_sec: float = settings.HTTP_TIMEOUT_SECONDS

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------
    search_schedule: str = settings.SEARCH_SCHEDULE
    schedule_timezone: str = settings.SCHEDULE_TIMEZONE
    watchlist_refresh_ms: int = settings.WATCHLIST_REFRESH_MS
    startup_delay_sec: float = settings.STARTUP_DELAY_SECONDS

    # -------------------------------------------------------------------------
    # Search / notify
    # -------------------------------------------------------------------------
    search_timeout_ms: int = settings.SEARCH_TIMEOUT_MS
    notify_cooldown_ms: int = settings.NOTIFY_COOLDOWN_MS
    search_rank: str = settings.SEARCH_RANK
    search_game_type: str = settings.SEARCH_GAME_TYPE

    # -------------------------------------------------------------------------
    # Session failover
    # -------------------------------------------------------------------------
    max_consecutive_failures: int = settings.MAX_CONSECUTIVE_FAILURES
    credential_batch_size: int = settings.CREDENTIAL_BATCH_SIZE
    count_empty_as_failure: bool = settings.COUNT_EMPTY_SEARCH_AS_FAILURE
    retry_acquire_when_idle: bool = settings.RETRY_ACQUIRE_WHEN_IDLE

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Reject settings the service cannot run with."""
        if self.search_schedule not in SCHEDULE_GRAINS:
            raise ValueError(
                f"SEARCH_SCHEDULE must be one of {SCHEDULE_GRAINS}, got {self.search_schedule!r}"
            )
        try:
            pytz.timezone(self.schedule_timezone)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown SCHEDULE_TIMEZONE: {self.schedule_timezone!r}")
        for name in ("watchlist_refresh_ms", "search_timeout_ms", "credential_batch_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.notify_cooldown_ms < 0 or self.max_consecutive_failures < 0:
            raise ValueError("notify_cooldown_ms and max_consecutive_failures must not be negative")

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def timezone(self):
        return pytz.timezone(self.schedule_timezone)

    @property
    def watchlist_refresh_sec(self) -> float:
        return self.watchlist_refresh_ms / 1000

    @property
    def search_timeout_sec(self) -> float:
        return self.search_timeout_ms / 1000

    @property
    def notify_cooldown_sec(self) -> float:
        return self.notify_cooldown_ms / 1000

    def search_filters(self) -> List[SearchFilter]:
        """Prime filter first, then non-prime. Merge order depends on it."""
        return [
            SearchFilter(prime=True, rank=self.search_rank, game_type=self.search_game_type),
            SearchFilter(prime=False, rank=self.search_rank, game_type=self.search_game_type),
        ]


# Global config instance
config = WatchConfig()

"""
Watcher Service Configuration
=============================

Configuration for the party search watcher service.

Every setting can be overridden with an environment variable of the same
name (or a line in the project-root .env file).
"""

import os
from pathlib import Path

# Load .env file from project root
from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


# =============================================================================
# REMOTE ENDPOINTS
# =============================================================================

# Backend API: account inventory, following players, in-game notifications
API_URL = os.environ.get("API_URL", "http://localhost:3000/api").rstrip("/")

# Session gateway that owns the actual matchmaking connections
SESSION_GATEWAY_URL = os.environ.get("SESSION_GATEWAY_URL", "http://localhost:4000").rstrip("/")

# Timeout for plain backend HTTP calls (seconds)
HTTP_TIMEOUT_SECONDS = _env_int("HTTP_TIMEOUT_SECONDS", 30)

# =============================================================================
# TIMING SETTINGS
# =============================================================================

# Search tick grain: "minute" fires at :00 of every minute, "hour" at the top of every hour
SEARCH_SCHEDULE = os.environ.get("SEARCH_SCHEDULE", "minute").strip().lower()

# Timezone the search schedule is aligned to
SCHEDULE_TIMEZONE = os.environ.get("SCHEDULE_TIMEZONE", "Asia/Ho_Chi_Minh")

# How often the following-players list is reloaded
WATCHLIST_REFRESH_MS = _env_int("WATCHLIST_REFRESH_MS", 60 * 60 * 1000)

# Upper bound for each party search request
SEARCH_TIMEOUT_MS = _env_int("SEARCH_TIMEOUT_MS", 60_000)

# Minimum time between two notifications for the same player
NOTIFY_COOLDOWN_MS = _env_int("NOTIFY_COOLDOWN_MS", 5 * 60 * 1000)

# Delay before the first startup step runs
STARTUP_DELAY_SECONDS = _env_int("STARTUP_DELAY_SECONDS", 5)

# =============================================================================
# SESSION FAILOVER
# =============================================================================

# Consecutive failed (or empty) searches tolerated before a new session is acquired
MAX_CONSECUTIVE_FAILURES = _env_int("MAX_CONSECUTIVE_FAILURES", 30)

# Accounts requested from the backend per acquisition batch
CREDENTIAL_BATCH_SIZE = _env_int("CREDENTIAL_BATCH_SIZE", 20)

# An empty merged search result counts toward failover
COUNT_EMPTY_SEARCH_AS_FAILURE = _env_bool("COUNT_EMPTY_SEARCH_AS_FAILURE", True)

# Start an acquisition on ticks that find no active session
RETRY_ACQUIRE_WHEN_IDLE = _env_bool("RETRY_ACQUIRE_WHEN_IDLE", True)

# =============================================================================
# PARTY SEARCH FILTERS
# =============================================================================

SEARCH_RANK = os.environ.get("SEARCH_RANK", "Gold Nova I")
SEARCH_GAME_TYPE = os.environ.get("SEARCH_GAME_TYPE", "Competitive")

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE", "logs/watcher.log")

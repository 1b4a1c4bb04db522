#!/usr/bin/env python3
"""
Health check script for the Party Search Watcher.

Returns exit code 0 if healthy, non-zero otherwise.
Used by container health checks.

Checks:
1. Backend API answers getFollowingPlayers
2. Session gateway is reachable
3. Watcher log written recently (ticks log at least once per schedule period)
"""

import sys
import time
from pathlib import Path

import requests

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from partywatch.api import BackendClient
from partywatch.config import config
from partywatch.exceptions import BackendError
from config.watch_settings import LOG_FILE

# Allowed log silence per schedule grain, with slack for a slow tick
MAX_LOG_AGE_SECONDS = {"minute": 5 * 60, "hour": 75 * 60}


def latest_log_file() -> Path:
    log_path = Path(LOG_FILE)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    candidates = sorted(log_path.parent.glob(f"{log_path.stem}_*{log_path.suffix}"))
    return candidates[-1] if candidates else None


def check_health() -> bool:
    """
    Perform health checks.

    Returns:
        True if healthy, False otherwise
    """
    # Check 1: Backend API
    try:
        followed = BackendClient(timeout=10).get_following_players()
    except BackendError as e:
        print(f"FAIL: Backend API error: {e}")
        return False

    # Check 2: Session gateway
    try:
        requests.get(config.session_gateway_url, timeout=10)
    except requests.exceptions.RequestException as e:
        print(f"FAIL: Session gateway unreachable: {type(e).__name__}")
        return False

    # Check 3: Log freshness
    log_file = latest_log_file()
    if log_file is None:
        # This is OK during initial startup
        print("WARN: No watcher log yet (may be initializing)")
        return True

    age = time.time() - log_file.stat().st_mtime
    max_age = MAX_LOG_AGE_SECONDS.get(config.search_schedule, MAX_LOG_AGE_SECONDS["hour"])
    if age > max_age:
        print(f"FAIL: {log_file.name} not written for {age:.0f}s (> {max_age}s)")
        return False

    print(f"OK: {len(followed)} followed players, last log write {age:.0f}s ago")
    return True


def main():
    """Run health check and exit with appropriate code."""
    try:
        healthy = check_health()
        sys.exit(0 if healthy else 1)
    except Exception as e:
        print(f"FAIL: Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

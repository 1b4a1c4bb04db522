"""
Monitor Package
===============

Continuous party search watcher.

Components:
- orchestrator.py: Main WatcherService class with scheduling
- search_cycle.py: One tick (search -> dedupe -> filter -> notify)
- session_manager.py: Active session ownership and failover
- watchlist.py: Following players cache
- cooldown.py: Per-player notification cooldown
- alerts.py: In-game notifications to the backend
"""

from .orchestrator import WatcherService, next_fire_time
from .search_cycle import CycleOutcome, SearchCycle
from .session_manager import SessionManager
from .watchlist import WatchListCache
from .cooldown import CooldownTracker
from .alerts import InGameNotifier, NotifierConfig, send_test_notification

__all__ = [
    "WatcherService",
    "next_fire_time",
    "CycleOutcome",
    "SearchCycle",
    "SessionManager",
    "WatchListCache",
    "CooldownTracker",
    "InGameNotifier",
    "NotifierConfig",
    "send_test_notification",
]

"""
Notification Cooldown
=====================

Per-player gate so the same player is not reported more than once per
cooldown window.
"""

import logging
import threading
import time
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# 5 minutes between notifications for the same player
DEFAULT_COOLDOWN_SECONDS = 300


class CooldownTracker:
    """
    Last-notified timestamp per player.

    Entries are never removed; the map is bounded by the number of distinct
    followed players.
    """

    def __init__(self, cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS):
        self.cooldown_seconds = cooldown_seconds
        self._lock = threading.Lock()
        self._last_notified: Dict[str, float] = {}

    def should_notify(self, steam_id: str, now: Optional[float] = None) -> bool:
        """
        Decide whether a player may be notified, recording the decision.

        Check and record happen under one lock, so two callers racing for the
        same player cannot both get True inside one window.

        Args:
            steam_id: Player id
            now: Epoch seconds (default: time.time())

        Returns:
            True if the player is outside the cooldown window (now recorded)
        """
        if now is None:
            now = time.time()

        with self._lock:
            last = self._last_notified.get(steam_id)
            if last is not None and now - last < self.cooldown_seconds:
                remaining = int(self.cooldown_seconds - (now - last))
                logger.debug(f"Player {steam_id} in cooldown ({remaining}s remaining)")
                return False
            self._last_notified[steam_id] = now
            return True

    def last_notified(self, steam_id: str) -> Optional[float]:
        with self._lock:
            return self._last_notified.get(steam_id)

    def __len__(self) -> int:
        return len(self._last_notified)

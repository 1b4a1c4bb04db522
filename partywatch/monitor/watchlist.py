"""
Watchlist Management
====================

Process-wide set of followed player ids, reloaded from the backend on a
fixed interval and read by every search cycle.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, FrozenSet, Iterable, Optional

from partywatch.exceptions import BackendError

logger = logging.getLogger(__name__)


class WatchListCache:
    """
    Followed players, replaced wholesale on each successful refresh.

    A failed or empty fetch keeps the previous set: stale ids are preferred to
    no ids at all.
    """

    def __init__(self, source: Callable[[], Iterable[str]], initial: Iterable[str] = ()):
        """
        Args:
            source: Blocking callable returning the current followed ids
            initial: Ids to start with before the first refresh
        """
        self.source = source
        self._lock = threading.Lock()
        self._steam_ids: FrozenSet[str] = frozenset(initial)
        self.last_refreshed: Optional[datetime] = None

    def refresh(self) -> bool:
        """
        Reload the followed players.

        Returns:
            True if the set was replaced, False if the previous set was kept
        """
        try:
            steam_ids = self.source()
        except BackendError as e:
            logger.error(f"Failed to reload following players: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to reload following players: {type(e).__name__}: {e}")
            return False

        if not isinstance(steam_ids, (list, tuple, set, frozenset)) or not steam_ids:
            logger.warning("Following players list is empty or malformed, keeping previous list")
            return False

        fresh = frozenset(str(steam_id) for steam_id in steam_ids)
        with self._lock:
            self._steam_ids = fresh
            self.last_refreshed = datetime.now(timezone.utc)

        logger.info(f"Reloaded following players: {len(fresh)} players")
        return True

    def contains(self, steam_id: str) -> bool:
        # Readers see either the old or the new frozenset, never a partial one
        return steam_id in self._steam_ids

    __contains__ = contains

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return self._steam_ids

    def __len__(self) -> int:
        return len(self._steam_ids)

"""
Search Cycle
============

One scheduled tick of the watcher:

1. Skip if there is no session or one is being acquired
2. Re-acquire instead of searching after too many consecutive failures
3. Prime and non-prime party searches, both bounded by a timeout
4. Merge and deduplicate by steam id
5. Keep followed players outside their notification cooldown
6. Notify the backend
"""

import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional, Sequence

from partywatch.models import PartyPlayer, SearchFilter, dedupe_players
from partywatch.session import SessionHandle
from .alerts import InGameNotifier
from .cooldown import CooldownTracker
from .session_manager import SessionManager
from .watchlist import WatchListCache

logger = logging.getLogger(__name__)

# Consecutive failed searches tolerated before a new session is acquired
DEFAULT_FAILURE_THRESHOLD = 30
DEFAULT_SEARCH_TIMEOUT_SECONDS = 60.0


class CycleOutcome(str, Enum):
    """How a single tick ended."""
    SKIPPED = "skipped"
    REACQUIRED = "reacquired"
    SEARCH_FAILED = "search_failed"
    EMPTY = "empty"
    NO_MATCHES = "no_matches"
    NOTIFIED = "notified"


class SearchCycle:
    """
    Party search state machine.

    Owns the consecutive failure counter. The counter goes up on every failed
    or empty search and back to zero on every successful search and every
    acquisition attempt.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        watchlist: WatchListCache,
        cooldown: CooldownTracker,
        notifier: InGameNotifier,
        filters: Sequence[SearchFilter],
        search_timeout: float = DEFAULT_SEARCH_TIMEOUT_SECONDS,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        count_empty_as_failure: bool = True,
    ):
        """
        Args:
            filters: Search filters in merge order (prime first)
            search_timeout: Seconds allowed per search
            failure_threshold: Re-acquire once failures exceed this
            count_empty_as_failure: Treat an empty merged result as a failure
        """
        self.session_manager = session_manager
        self.watchlist = watchlist
        self.cooldown = cooldown
        self.notifier = notifier
        self.filters = list(filters)
        self.search_timeout = search_timeout
        self.failure_threshold = failure_threshold
        self.count_empty_as_failure = count_empty_as_failure

        self.failure_count = 0
        self._running = False

        # Stats
        self.ticks = 0
        self.last_outcome: Optional[CycleOutcome] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, now: Optional[float] = None) -> CycleOutcome:
        """
        Execute one tick.

        Args:
            now: Epoch seconds used for cooldown decisions (default: time.time())

        Returns:
            CycleOutcome describing where the tick stopped
        """
        if self._running:
            logger.warning("Previous search cycle still running, skipping tick")
            return self._finish(CycleOutcome.SKIPPED)

        self._running = True
        try:
            return self._finish(await self._run(now))
        finally:
            self._running = False

    def _finish(self, outcome: CycleOutcome) -> CycleOutcome:
        self.ticks += 1
        self.last_outcome = outcome
        return outcome

    async def _run(self, now: Optional[float]) -> CycleOutcome:
        # Step 1: Need a session, and nobody swapping it
        session = self.session_manager.current()
        if session is None or self.session_manager.is_acquiring:
            return CycleOutcome.SKIPPED

        # Step 2: Failover
        if self.failure_count > self.failure_threshold:
            logger.warning(
                f"Too many failures ({self.failure_count} > {self.failure_threshold}). "
                f"Re-acquiring session."
            )
            self.failure_count = 0
            await self.session_manager.acquire()
            return CycleOutcome.REACQUIRED

        # Step 3: Dual search
        session.log("Starting party search")
        try:
            results = await self._search_all(session)
        except Exception as e:
            self.failure_count += 1
            logger.error(
                f"Party search error ({self.failure_count} consecutive): "
                f"{type(e).__name__}: {e}"
            )
            return CycleOutcome.SEARCH_FAILED

        # Step 4: Merge and dedupe
        players = dedupe_players(player for result in results for player in result)
        if not players:
            if self.count_empty_as_failure:
                self.failure_count += 1
            logger.warning(f"No players found in party search ({self.failure_count} consecutive failures)")
            return CycleOutcome.EMPTY

        self.failure_count = 0
        session.log(f"Party search found {len(players)} players.")

        # Step 5: Followed and outside cooldown
        to_notify = self.select_players(players, now)
        if not to_notify:
            return CycleOutcome.NO_MATCHES

        # Step 6: Notify (best-effort, never retried)
        try:
            await asyncio.to_thread(self.notifier.notify, to_notify)
        except Exception as e:
            logger.error(f"Notification dispatch error: {type(e).__name__}: {e}")
        return CycleOutcome.NOTIFIED

    async def _search_all(self, session: SessionHandle) -> List[List[PartyPlayer]]:
        """Run every filter concurrently. Raises if any search fails or times out."""
        searches = [
            asyncio.wait_for(session.search(search_filter, self.search_timeout), self.search_timeout)
            for search_filter in self.filters
        ]
        results = await asyncio.gather(*searches, return_exceptions=True)

        for search_filter, result in zip(self.filters, results):
            if isinstance(result, asyncio.TimeoutError):
                raise asyncio.TimeoutError(
                    f"{search_filter.label} search timed out after {self.search_timeout}s"
                )
            if isinstance(result, BaseException):
                raise result
        return [result or [] for result in results]

    def select_players(self, players: List[PartyPlayer], now: Optional[float] = None) -> List[PartyPlayer]:
        """
        Keep followed players that are outside their cooldown window.

        The watchlist check runs first so the cooldown is only recorded for
        players that will actually be notified.
        """
        if now is None:
            now = time.time()
        return [
            player for player in players
            if self.watchlist.contains(player.steam_id)
            and self.cooldown.should_notify(player.steam_id, now)
        ]

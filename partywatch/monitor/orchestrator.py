"""
Watcher Service Orchestrator
============================

Main service wiring the session manager, watchlist, cooldown tracker and
search cycle to their timers.

Architecture:
- Startup: load following players, warm the credential cache, acquire the
  first session
- Search timer: fires at the top of every minute (or hour) in the configured
  timezone; a tick still running when the next one is due makes the new
  tick skip
- Watchlist timer: independent reload every hour by default
- No persistence: cooldowns and failure counts start fresh on every run
"""

import asyncio
import logging
import signal
from datetime import datetime, timedelta
from typing import Callable, Optional

from partywatch.api import BackendClient
from partywatch.config import WatchConfig, config as default_config
from partywatch.models import Credential
from partywatch.session import SessionHandle, create_gateway_session
from .alerts import InGameNotifier, NotifierConfig
from .cooldown import CooldownTracker
from .search_cycle import CycleOutcome, SearchCycle
from .session_manager import SessionManager
from .watchlist import WatchListCache

logger = logging.getLogger(__name__)


def next_fire_time(after: datetime, grain: str) -> datetime:
    """
    Next schedule boundary strictly after `after`.

    Args:
        after: Timezone-aware current time
        grain: "minute" (second 0 of every minute) or "hour" (minute 0)

    Returns:
        Timezone-aware datetime of the next firing
    """
    if grain == "minute":
        base = after.replace(second=0, microsecond=0)
        step = timedelta(minutes=1)
    elif grain == "hour":
        base = after.replace(minute=0, second=0, microsecond=0)
        step = timedelta(hours=1)
    else:
        raise ValueError(f"Unknown schedule grain: {grain!r}")

    fire = base + step
    # pytz zones need normalize() after arithmetic across a DST change
    normalize = getattr(after.tzinfo, "normalize", None)
    return normalize(fire) if normalize else fire


class WatcherService:
    """
    Continuous party search watcher.

    Runs on a single asyncio event loop. Blocking HTTP calls are pushed to
    worker threads.
    """

    def __init__(
        self,
        watch_config: Optional[WatchConfig] = None,
        dry_run: bool = False,
        backend: Optional[BackendClient] = None,
        session_factory: Optional[Callable[[Credential], SessionHandle]] = None,
        notifier: Optional[InGameNotifier] = None,
    ):
        """
        Initialize the watcher service.

        Args:
            watch_config: Settings (default: global config)
            dry_run: If True, print notifications instead of posting them
            backend: Backend API client (default: BackendClient from config)
            session_factory: Builds sessions from credentials (default: gateway)
            notifier: Notification sink (default: InGameNotifier on `backend`)
        """
        self.config = watch_config or default_config
        self.dry_run = dry_run

        self.backend = backend or BackendClient(
            api_url=self.config.api_url,
            timeout=self.config.http_timeout_sec,
        )
        self.notifier = notifier or InGameNotifier(self.backend, NotifierConfig(dry_run=dry_run))

        self.session_manager = SessionManager(
            credential_source=self.backend.get_store_accounts,
            session_factory=session_factory or create_gateway_session,
            batch_size=self.config.credential_batch_size,
        )
        self.watchlist = WatchListCache(self.backend.get_following_players)
        self.cooldown = CooldownTracker(self.config.notify_cooldown_sec)
        self.search_cycle = SearchCycle(
            self.session_manager,
            self.watchlist,
            self.cooldown,
            self.notifier,
            filters=self.config.search_filters(),
            search_timeout=self.config.search_timeout_sec,
            failure_threshold=self.config.max_consecutive_failures,
            count_empty_as_failure=self.config.count_empty_as_failure,
        )

        # State tracking
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._tick_task: Optional[asyncio.Task] = None
        self.skipped_ticks = 0

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def startup(self):
        """
        One-time initialization.

        1. Load following players
        2. Warm the credential cache
        3. Acquire the first session
        """
        logger.info("Step 1: Loading following players...")
        await asyncio.to_thread(self.watchlist.refresh)

        logger.info("Step 2: Fetching store accounts...")
        await self.session_manager.prefetch()

        logger.info("Step 3: Acquiring session...")
        session = await self.session_manager.acquire()
        if session is None:
            logger.warning("Starting without a session, will retry on the next tick")

    # -------------------------------------------------------------------------
    # Ticks
    # -------------------------------------------------------------------------

    async def tick(self) -> CycleOutcome:
        """Run one search cycle, recovering the session if there is none."""
        outcome = await self.search_cycle.run()
        logger.debug(f"Search cycle outcome: {outcome.value}")

        if (
            outcome is CycleOutcome.SKIPPED
            and self.config.retry_acquire_when_idle
            and self.session_manager.current() is None
            and not self.session_manager.is_acquiring
        ):
            logger.info("No active session, attempting acquisition")
            await self.session_manager.acquire()

        return outcome

    async def _guarded_tick(self):
        try:
            await self.tick()
        except Exception:
            logger.exception("Error in party search tick")

    def _fire(self) -> bool:
        """Start a tick unless the previous one is still running."""
        if self._tick_task is not None and not self._tick_task.done():
            self.skipped_ticks += 1
            logger.warning("Previous tick still running, skipping this one")
            return False
        self._tick_task = asyncio.create_task(self._guarded_tick())
        return True

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True if the service was stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(0.0, seconds))
            return True
        except asyncio.TimeoutError:
            return False

    async def _search_loop(self):
        tz = self.config.timezone
        logger.info(f"Party search schedule: every {self.config.search_schedule} ({tz.zone})")

        last_fire_at: Optional[datetime] = None
        while self.running:
            now = datetime.now(tz)
            fire_at = self.next_search_time(now, last_fire_at)
            if await self._sleep((fire_at - now).total_seconds()):
                break
            last_fire_at = fire_at
            self._fire()

    def next_search_time(self, now: datetime, last_fire_at: Optional[datetime] = None) -> datetime:
        """
        Next search boundary, never at or before the last one fired.

        A sleep can end slightly before the wall clock reaches its boundary,
        so the previous boundary is a floor for the next computation.
        """
        after = now if last_fire_at is None else max(now, last_fire_at)
        return next_fire_time(after, self.config.search_schedule)

    async def _watchlist_loop(self):
        interval = self.config.watchlist_refresh_sec
        while self.running:
            if await self._sleep(interval):
                break
            try:
                await asyncio.to_thread(self.watchlist.refresh)
            except Exception:
                logger.exception("Error refreshing following players")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform / not the main thread
                pass

    async def run(self, once: bool = False):
        """
        Main entry point.

        Args:
            once: Run startup and a single search cycle, then return
        """
        self.running = True
        self._stop_event = asyncio.Event()
        self._install_signal_handlers()

        logger.info("=" * 60)
        logger.info("PARTY SEARCH WATCHER STARTING")
        logger.info("=" * 60)
        logger.info(f"Search schedule: every {self.config.search_schedule}")
        logger.info(f"Watchlist refresh: every {self.config.watchlist_refresh_sec:.0f}s")
        logger.info(f"Search timeout: {self.config.search_timeout_sec:.0f}s, "
                    f"cooldown: {self.config.notify_cooldown_sec:.0f}s, "
                    f"failover after {self.config.max_consecutive_failures} failures")
        logger.info(f"Dry run: {self.dry_run}")

        watchlist_task = None
        try:
            if self.config.startup_delay_sec and not once:
                if await self._sleep(self.config.startup_delay_sec):
                    return

            await self.startup()

            if once:
                outcome = await self.tick()
                logger.info(f"Single cycle finished: {outcome.value}")
                return

            watchlist_task = asyncio.create_task(self._watchlist_loop())
            await self._search_loop()

        finally:
            self.running = False
            self._stop_event.set()
            if watchlist_task is not None:
                await asyncio.gather(watchlist_task, return_exceptions=True)
            if self._tick_task is not None and not self._tick_task.done():
                await asyncio.gather(self._tick_task, return_exceptions=True)
            await self.session_manager.shutdown()

            logger.info(
                f"Ticks: {self.search_cycle.ticks} run, {self.skipped_ticks} skipped; "
                f"notifications: {self.notifier.sent_batches} sent, {self.notifier.failed_batches} failed"
            )
            logger.info("PARTY SEARCH WATCHER STOPPED")

    def stop(self):
        """Stop the watcher gracefully."""
        logger.info("Shutdown signal received, stopping watcher...")
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()

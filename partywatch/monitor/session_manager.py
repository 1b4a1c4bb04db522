"""
Session Manager
===============

Owns the single active matchmaking session.

Acquisition walks a batch of store accounts in order, probes each one with a
silent game launch and installs the first usable session, logging off the
previous one in the background. Only one acquisition runs at a time; callers
arriving while one is in progress are turned away, not queued.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set, Tuple

from partywatch.exceptions import SessionExhaustion, SessionProbeFailure
from partywatch.models import Credential
from partywatch.session import SessionHandle, SessionState

logger = logging.getLogger(__name__)

CredentialSource = Callable[[int], List[Credential]]
SessionFactory = Callable[[Credential], SessionHandle]


class SessionManager:
    """
    Single owner of the active SessionHandle.

    The active handle is only ever replaced inside acquire(), with no await
    between installing the new handle and demoting the old one.
    """

    def __init__(
        self,
        credential_source: CredentialSource,
        session_factory: SessionFactory,
        batch_size: int = 20,
    ):
        """
        Args:
            credential_source: Blocking callable returning up to N credentials.
                Expected to return [] rather than raise on upstream failure.
            session_factory: Builds an unprobed handle for a credential
            batch_size: Credentials requested per fetch
        """
        self.credential_source = credential_source
        self.session_factory = session_factory
        self.batch_size = batch_size

        self._active: Optional[SessionHandle] = None
        self._acquiring = False
        self._cached_batch: List[Credential] = []
        self._pending_closes: Set[asyncio.Task] = set()

        self.acquisitions = 0

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def current(self) -> Optional[SessionHandle]:
        """The active session, or None."""
        return self._active

    @property
    def is_acquiring(self) -> bool:
        return self._acquiring

    @property
    def cached_credentials(self) -> int:
        return len(self._cached_batch)

    # -------------------------------------------------------------------------
    # Credential batches
    # -------------------------------------------------------------------------

    async def _fetch_batch(self) -> List[Credential]:
        try:
            batch = await asyncio.to_thread(self.credential_source, self.batch_size)
        except Exception as e:
            logger.error(f"Credential source failed: {type(e).__name__}: {e}")
            return []
        return list(batch or [])

    async def prefetch(self) -> int:
        """
        Warm the credential cache so the first acquisition skips a fetch.

        Returns:
            Number of cached credentials
        """
        self._cached_batch = await self._fetch_batch()
        logger.info(f"Cached {len(self._cached_batch)} credentials")
        return len(self._cached_batch)

    def _take_batch(self) -> Tuple[List[Credential], bool]:
        """Consume the cached batch. Returns (batch, came_from_cache)."""
        batch, self._cached_batch = self._cached_batch, []
        return batch, bool(batch)

    # -------------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------------

    async def acquire(self) -> Optional[SessionHandle]:
        """
        Find a usable account and make its session the active one.

        Returns:
            The newly installed session, or None if an acquisition was already
            running or no credential yielded a usable session. The previous
            active session is left untouched when None is returned.
        """
        if self._acquiring:
            logger.debug("Session acquisition already in progress, skipping")
            return None

        self._acquiring = True
        try:
            self.acquisitions += 1
            logger.info("Searching for usable session...")

            batch, from_cache = self._take_batch()
            if not batch:
                batch = await self._fetch_batch()

            handle = await self._try_batch(batch)
            if handle is None and from_cache:
                logger.info("Cached credentials exhausted, fetching a fresh batch")
                handle = await self._try_batch(await self._fetch_batch())

            if handle is None:
                raise SessionExhaustion("no usable session found")
            return handle

        except SessionExhaustion as e:
            logger.warning(f"Session acquisition failed: {e}")
            return None
        except Exception as e:
            logger.error(f"Session acquisition error: {type(e).__name__}: {e}")
            return None
        finally:
            self._acquiring = False

    async def _try_batch(self, batch: List[Credential]) -> Optional[SessionHandle]:
        for index, credential in enumerate(batch):
            handle = self.session_factory(credential)
            if await self._probe(handle):
                self._install(handle)
                # Untried credentials become the next cached batch
                self._cached_batch = list(batch[index + 1:])
                return handle
            await self._close_quietly(handle)
        return None

    async def _probe(self, handle: SessionHandle) -> bool:
        try:
            playable = await handle.probe()
        except SessionProbeFailure as e:
            logger.info(f"[{handle.label}] Probe failed: {e}")
            return False
        except Exception as e:
            logger.warning(f"[{handle.label}] Probe error: {type(e).__name__}: {e}")
            return False

        if not playable:
            logger.info(f"[{handle.label}] Account is not playable right now")
        return bool(playable)

    def _install(self, handle: SessionHandle):
        """Swap the active session. Must not await."""
        handle.detach_listeners()
        previous = self._active

        handle.state = SessionState.ACTIVE
        self._active = handle

        if previous is not None and previous is not handle:
            previous.demote()
            self._close_in_background(previous)

        logger.info(f"New session logged in: {handle.label}")

    # -------------------------------------------------------------------------
    # Closing
    # -------------------------------------------------------------------------

    async def _close_quietly(self, handle: SessionHandle):
        try:
            await handle.close()
        except Exception as e:
            logger.warning(f"[{handle.label}] Close failed: {type(e).__name__}: {e}")

    def _close_in_background(self, handle: SessionHandle):
        task = asyncio.create_task(self._close_quietly(handle))
        self._pending_closes.add(task)
        task.add_done_callback(self._pending_closes.discard)

    async def wait_for_pending_closes(self):
        """Wait until every background log off has finished."""
        if self._pending_closes:
            await asyncio.gather(*list(self._pending_closes), return_exceptions=True)

    async def shutdown(self):
        """Log off the active session and drain background closes."""
        active, self._active = self._active, None
        if active is not None:
            await self._close_quietly(active)
        await self.wait_for_pending_closes()
        logger.info("Session manager shut down")

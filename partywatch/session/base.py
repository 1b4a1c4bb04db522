"""
Session Handle Interface

A SessionHandle is one authenticated connection to the matchmaking backend.
The watcher only needs three things from it: a cheap liveness probe, party
search and log off. Everything else about the protocol stays behind this
interface.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List

from ..models import Credential, PartyPlayer, SearchFilter

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a session handle."""
    PENDING = "pending"    # created, not yet probed or installed
    ACTIVE = "active"      # installed by the session manager
    CLOSING = "closing"
    CLOSED = "closed"


class SessionHandle(ABC):
    """
    Base class for matchmaking sessions.

    Subclasses implement probe(), search() and _close(). State transitions
    to ACTIVE are made by the session manager only.
    """

    def __init__(self, credential: Credential):
        self.credential = credential
        self.state = SessionState.PENDING
        self._close_started = False
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)

    @property
    def label(self) -> str:
        return str(self.credential)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @abstractmethod
    async def probe(self) -> bool:
        """
        Log in and check the account can currently play.

        Much cheaper than a party search. Returns False (or raises) when the
        account is not usable right now.
        """

    @abstractmethod
    async def search(self, search_filter: SearchFilter, timeout: float) -> List[PartyPlayer]:
        """
        Run one party search.

        Args:
            search_filter: Pool, rank and game mode to search
            timeout: Seconds the remote search may take

        Raises:
            SearchError: on any failure
        """

    @abstractmethod
    async def _close(self):
        """Log off and release protocol resources."""

    def demote(self):
        """Leave the ACTIVE state ahead of an asynchronous close()."""
        if self.state is not SessionState.CLOSED:
            self.state = SessionState.CLOSING

    async def close(self):
        """Log off. Safe to call more than once."""
        if self._close_started:
            return
        self._close_started = True
        self.state = SessionState.CLOSING
        try:
            await self._close()
        finally:
            self.state = SessionState.CLOSED
            self._listeners.clear()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: Callable):
        self._listeners[event].append(callback)

    def emit(self, event: str, *args):
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"[{self.label}] {event} listener failed: {e}")

    def detach_listeners(self):
        """Drop every event subscription made while probing."""
        self._listeners.clear()

    def log(self, message: str):
        logger.info(f"[{self.label}] {message}")

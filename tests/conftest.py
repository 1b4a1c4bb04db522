"""
Pytest fixtures and configuration for the watcher test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from partywatch.models import Credential, PartyPlayer, SearchFilter
from partywatch.monitor import CooldownTracker, SearchCycle, SessionManager, WatchListCache
from tests.fakes import FakeSession, RecordingNotifier, ScriptedSessionFactory, StaticCredentialSource


PRIME = SearchFilter(prime=True, rank="Gold Nova I", game_type="Competitive")
NON_PRIME = SearchFilter(prime=False, rank="Gold Nova I", game_type="Competitive")


def players(*steam_ids):
    return [PartyPlayer(steam_id=steam_id) for steam_id in steam_ids]


@pytest.fixture
def credentials():
    return [Credential(cookie=f"cookie-{i}", label=f"acct-{i}") for i in range(3)]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def watchlist():
    return WatchListCache(lambda: ["p1", "p2"], initial=["p1", "p2"])


@pytest.fixture
def cooldown():
    return CooldownTracker(cooldown_seconds=300)


@pytest.fixture
def active_session():
    session = FakeSession(Credential(cookie="live", label="live"))
    session.results = {True: players("p1", "p3"), False: players("p2", "p1")}
    return session


@pytest.fixture
def manager(active_session):
    """Session manager with `active_session` already installed."""
    source = StaticCredentialSource([[Credential(cookie="spare", label="spare")]])
    factory = ScriptedSessionFactory(probe_results=[True])
    mgr = SessionManager(source, factory, batch_size=20)
    mgr._install(active_session)
    return mgr


@pytest.fixture
def cycle(manager, watchlist, cooldown, notifier):
    return SearchCycle(
        manager,
        watchlist,
        cooldown,
        notifier,
        filters=[PRIME, NON_PRIME],
        search_timeout=1.0,
        failure_threshold=30,
    )

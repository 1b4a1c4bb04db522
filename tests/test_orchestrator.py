"""
Tests for the watcher service scheduling glue.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import pytz

from partywatch.config import WatchConfig
from partywatch.models import Credential
from partywatch.monitor import CycleOutcome, WatcherService, next_fire_time
from tests.conftest import players
from tests.fakes import FakeSession, RecordingNotifier


def make_backend(following=("p1", "p2"), batches=None):
    backend = MagicMock()
    backend.get_following_players.return_value = list(following)
    queued = list(batches) if batches is not None else [[Credential(cookie="c0", label="acct-0")]]
    backend.get_store_accounts.side_effect = lambda limit: queued.pop(0) if queued else []
    return backend


def sighting_factory(credential):
    session = FakeSession(credential)
    session.results = {True: players("p1", "p3"), False: players("p2", "p1")}
    return session


@pytest.fixture
def watch_config():
    return WatchConfig(
        startup_delay_sec=0,
        search_timeout_ms=1000,
        notify_cooldown_ms=300_000,
        max_consecutive_failures=30,
        credential_batch_size=5,
    )


@pytest.fixture
def service(watch_config):
    return WatcherService(
        watch_config=watch_config,
        backend=make_backend(),
        session_factory=sighting_factory,
        notifier=RecordingNotifier(),
    )


class TestNextFireTime:
    tz = pytz.timezone("Asia/Ho_Chi_Minh")

    def test_minute_grain(self):
        now = self.tz.localize(datetime(2026, 10, 19, 12, 34, 56, 789))

        assert next_fire_time(now, "minute") == self.tz.localize(datetime(2026, 10, 19, 12, 35))

    def test_hour_grain(self):
        now = self.tz.localize(datetime(2026, 10, 19, 23, 34, 56))

        assert next_fire_time(now, "hour") == self.tz.localize(datetime(2026, 10, 20, 0, 0))

    def test_exact_boundary_moves_to_next(self):
        now = self.tz.localize(datetime(2026, 10, 19, 12, 35))

        assert next_fire_time(now, "minute") - now == timedelta(minutes=1)

    def test_dst_gap_is_normalized(self):
        eastern = pytz.timezone("America/New_York")
        now = eastern.localize(datetime(2026, 3, 8, 1, 30))

        fire = next_fire_time(now, "hour")

        assert fire.hour == 3
        assert fire.utcoffset() == timedelta(hours=-4)

    def test_unknown_grain(self):
        with pytest.raises(ValueError):
            next_fire_time(self.tz.localize(datetime(2026, 1, 1)), "day")


@pytest.mark.asyncio
class TestWatcherService:

    async def test_startup_loads_watchlist_and_acquires(self, service):
        await service.startup()

        assert service.watchlist.snapshot() == frozenset({"p1", "p2"})
        assert service.session_manager.current() is not None
        assert service.backend.get_store_accounts.call_count == 1

    async def test_run_once_notifies(self, service):
        await service.run(once=True)

        assert service.notifier.notified_ids == [["p1", "p2"]]
        assert service.notifier.sent_batches == 1
        assert service.notifier.failed_batches == 0
        assert service.search_cycle.last_outcome is CycleOutcome.NOTIFIED
        assert service.session_manager.current() is None
        assert service.running is False

    async def test_idle_tick_retries_acquisition(self, watch_config):
        backend = make_backend(batches=[[], [], [Credential(cookie="c1", label="acct-1")]])
        service = WatcherService(
            watch_config=watch_config,
            backend=backend,
            session_factory=sighting_factory,
            notifier=RecordingNotifier(),
        )
        await service.startup()
        assert service.session_manager.current() is None

        outcome = await service.tick()

        assert outcome is CycleOutcome.SKIPPED
        assert service.session_manager.current().label == "acct-1"
        assert service.notifier.batches == []

    async def test_idle_retry_can_be_disabled(self, watch_config):
        watch_config.retry_acquire_when_idle = False
        backend = make_backend(batches=[])
        service = WatcherService(watch_config=watch_config, backend=backend,
                                 session_factory=sighting_factory, notifier=RecordingNotifier())

        await service.tick()

        backend.get_store_accounts.assert_not_called()

    async def test_fire_skips_while_previous_tick_runs(self, service):
        pending = asyncio.get_running_loop().create_future()
        service._tick_task = pending

        assert service._fire() is False
        assert service.skipped_ticks == 1

        pending.set_result(None)
        assert service._fire() is True
        await service._tick_task

    async def test_stop_ends_search_loop(self, service):
        service.running = True
        service._stop_event = asyncio.Event()

        loop_task = asyncio.create_task(service._search_loop())
        await asyncio.sleep(0)
        service.stop()

        await asyncio.wait_for(loop_task, timeout=1)
        assert service._tick_task is None

    async def test_uses_configured_filters(self, service):
        filters = service.search_cycle.filters

        assert [f.prime for f in filters] == [True, False]
        assert service.search_cycle.search_timeout == 1.0
        assert service.cooldown.cooldown_seconds == 300.0


class EarlyClock(datetime):
    """Wall clock stuck 10ms before 12:35, as after a sleep that wakes early."""

    @classmethod
    def now(cls, tz=None):
        return tz.localize(datetime(2026, 10, 19, 12, 34, 59, 990000))


class TestSearchSchedule:
    tz = pytz.timezone("Asia/Ho_Chi_Minh")

    def test_next_search_time_without_history(self, service):
        now = self.tz.localize(datetime(2026, 10, 19, 12, 34, 59, 990000))

        assert service.next_search_time(now) == self.tz.localize(datetime(2026, 10, 19, 12, 35))

    def test_early_wakeup_does_not_repeat_boundary(self, service):
        now = self.tz.localize(datetime(2026, 10, 19, 12, 34, 59, 990000))
        fired = self.tz.localize(datetime(2026, 10, 19, 12, 35))

        assert service.next_search_time(now, fired) == self.tz.localize(datetime(2026, 10, 19, 12, 36))

    @pytest.mark.asyncio
    async def test_search_loop_fires_each_boundary_once(self, service, monkeypatch):
        monkeypatch.setattr("partywatch.monitor.orchestrator.datetime", EarlyClock)
        service.config.schedule_timezone = "Asia/Ho_Chi_Minh"
        service.running = True
        sleeps = []
        fires = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            return len(sleeps) > 3

        monkeypatch.setattr(service, "_sleep", fake_sleep)
        monkeypatch.setattr(service, "_fire", lambda: fires.append(True))

        await service._search_loop()

        assert len(fires) == 3
        assert sleeps[0] == pytest.approx(0.01)
        assert sleeps[1] == pytest.approx(60.01)
        assert sleeps[2] == pytest.approx(120.01)

"""
Tests for the party search cycle state machine.
"""

import asyncio

import pytest

from partywatch.monitor import CycleOutcome, SearchCycle
from tests.conftest import NON_PRIME, PRIME, players
from tests.fakes import RaisingNotifier, failing_search

pytestmark = pytest.mark.asyncio

NOW = 1_700_000_000.0


class TestScenarios:
    """Worked examples: merge order, watchlist and cooldown filtering."""

    async def test_scenario_a_notifies_followed_players_in_merge_order(self, cycle, notifier):
        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NOTIFIED
        assert notifier.notified_ids == [["p1", "p2"]]
        assert cycle.failure_count == 0

    async def test_scenario_b_skips_player_inside_cooldown(self, cycle, cooldown, notifier):
        assert cooldown.should_notify("p1", NOW - 60)

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NOTIFIED
        assert notifier.notified_ids == [["p2"]]

    async def test_second_tick_inside_window_notifies_nothing(self, cycle, notifier):
        await cycle.run(now=NOW)
        outcome = await cycle.run(now=NOW + 30)

        assert outcome is CycleOutcome.NO_MATCHES
        assert len(notifier.batches) == 1

    async def test_tick_after_window_notifies_again(self, cycle, notifier):
        await cycle.run(now=NOW)
        await cycle.run(now=NOW + 300)

        assert notifier.notified_ids == [["p1", "p2"], ["p1", "p2"]]

    async def test_both_filters_are_searched(self, cycle, active_session):
        await cycle.run(now=NOW)

        assert sorted(f.prime for f in active_session.search_calls) == [False, True]
        assert active_session.logged[0] == "Starting party search"
        assert active_session.logged[1] == "Party search found 3 players."


class TestFailureAccounting:

    async def test_empty_results_count_as_failure_without_notification(self, cycle, active_session, notifier):
        active_session.results = {True: [], False: []}

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.EMPTY
        assert cycle.failure_count == 1
        assert notifier.batches == []

    async def test_empty_results_can_be_tolerated(self, manager, watchlist, cooldown, notifier, active_session):
        active_session.results = {True: [], False: []}
        cycle = SearchCycle(
            manager, watchlist, cooldown, notifier,
            filters=[PRIME, NON_PRIME],
            count_empty_as_failure=False,
        )

        assert await cycle.run(now=NOW) is CycleOutcome.EMPTY
        assert cycle.failure_count == 0

    async def test_search_error_aborts_whole_pair(self, cycle, active_session, notifier):
        active_session.results[False] = failing_search()

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.SEARCH_FAILED
        assert cycle.failure_count == 1
        assert notifier.batches == []

    async def test_timeout_counts_as_failure(self, cycle, active_session, notifier):
        active_session.search_delay = 5.0
        cycle.search_timeout = 0.05

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.SEARCH_FAILED
        assert cycle.failure_count == 1
        assert notifier.batches == []

    async def test_successful_search_resets_counter_even_without_matches(self, cycle, active_session):
        cycle.failure_count = 12
        active_session.results = {True: players("stranger"), False: []}

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NO_MATCHES
        assert cycle.failure_count == 0

    async def test_notifier_failure_does_not_touch_counter(self, cycle, notifier):
        notifier.succeed = False

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NOTIFIED
        assert cycle.failure_count == 0

    async def test_raising_notifier_does_not_escape_cycle(self, manager, watchlist, cooldown):
        notifier = RaisingNotifier()
        cycle = SearchCycle(manager, watchlist, cooldown, notifier,
                            filters=[PRIME, NON_PRIME], search_timeout=1.0)

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NOTIFIED
        assert notifier.notified_ids == [["p1", "p2"]]
        assert cycle.failure_count == 0
        assert cooldown.last_notified("p1") == NOW
        assert cycle.is_running is False


class TestFailover:

    async def test_scenario_c_reacquires_after_threshold_exceeded(self, cycle, manager, active_session):
        active_session.results = {True: [], False: []}

        for _ in range(31):
            assert await cycle.run(now=NOW) is CycleOutcome.EMPTY
        assert cycle.failure_count == 31

        searches_before = len(active_session.search_calls)
        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.REACQUIRED
        assert cycle.failure_count == 0
        assert len(active_session.search_calls) == searches_before
        assert manager.current() is not active_session
        assert manager.current().label == "spare"

        await manager.wait_for_pending_closes()
        assert active_session.close_calls == 1

    async def test_failed_reacquisition_keeps_session_and_resets_counter(self, cycle, manager, active_session):
        manager.session_factory.probe_results = [False]
        cycle.failure_count = 31

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.REACQUIRED
        assert cycle.failure_count == 0
        assert manager.current() is active_session

    async def test_at_threshold_still_searches(self, cycle, active_session):
        cycle.failure_count = 30

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.NOTIFIED
        assert active_session.search_calls


class TestSkipping:

    async def test_no_session_is_a_noop(self, cycle, manager, notifier):
        manager._active = None
        cycle.failure_count = 3

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.SKIPPED
        assert cycle.failure_count == 3
        assert notifier.batches == []

    async def test_acquisition_in_progress_is_a_noop(self, cycle, manager, active_session):
        manager._acquiring = True

        outcome = await cycle.run(now=NOW)

        assert outcome is CycleOutcome.SKIPPED
        assert active_session.search_calls == []

    async def test_overlapping_run_is_skipped(self, cycle, active_session):
        active_session.search_delay = 0.1

        first = asyncio.create_task(cycle.run(now=NOW))
        await asyncio.sleep(0.01)
        second = await cycle.run(now=NOW)

        assert second is CycleOutcome.SKIPPED
        assert await first is CycleOutcome.NOTIFIED
        assert len(active_session.search_calls) == 2

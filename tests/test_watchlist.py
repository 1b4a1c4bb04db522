"""
Tests for the following-players cache.
"""

from partywatch.exceptions import BackendError
from partywatch.monitor import WatchListCache


class TestWatchListCache:

    def test_refresh_replaces_set(self):
        cache = WatchListCache(lambda: ["p1", "p2"], initial=["old"])

        assert cache.refresh()

        assert cache.contains("p1")
        assert "p2" in cache
        assert not cache.contains("old")
        assert len(cache) == 2
        assert cache.last_refreshed is not None

    def test_failed_fetch_keeps_previous_set(self):
        def broken():
            raise BackendError("GET getFollowingPlayers timed out")

        cache = WatchListCache(broken, initial=["p1"])

        assert not cache.refresh()
        assert cache.contains("p1")
        assert cache.last_refreshed is None

    def test_unexpected_error_keeps_previous_set(self):
        def broken():
            raise KeyError("result")

        cache = WatchListCache(broken, initial=["p1"])

        assert not cache.refresh()
        assert cache.snapshot() == frozenset({"p1"})

    def test_empty_list_keeps_previous_set(self):
        cache = WatchListCache(lambda: [], initial=["p1"])

        assert not cache.refresh()
        assert cache.contains("p1")

    def test_malformed_result_keeps_previous_set(self):
        cache = WatchListCache(lambda: "p1,p2", initial=["p1"])

        assert not cache.refresh()
        assert cache.snapshot() == frozenset({"p1"})

    def test_ids_are_compared_as_strings(self):
        cache = WatchListCache(lambda: [76561197960265728])

        cache.refresh()

        assert cache.contains("76561197960265728")

    def test_successive_refreshes_track_source(self):
        responses = [["p1"], ["p2", "p3"]]
        cache = WatchListCache(lambda: responses.pop(0))

        cache.refresh()
        cache.refresh()

        assert cache.snapshot() == frozenset({"p2", "p3"})

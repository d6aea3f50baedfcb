"""Tests for shared run counters."""

import threading

import pytest

from sockbench.runner.counters import RunCounters


class TestRunCounters:
    """Tests for RunCounters."""

    def test_starts_at_zero(self) -> None:
        """Test a fresh counter pair."""
        snapshot = RunCounters().snapshot()
        assert snapshot.received == 0
        assert snapshot.lost == 0

    def test_increments(self) -> None:
        """Test each counter increments independently."""
        counters = RunCounters()
        counters.incr_received()
        counters.incr_received(4)
        counters.incr_lost()

        snapshot = counters.snapshot()
        assert snapshot.received == 5
        assert snapshot.lost == 1

    def test_cannot_decrement(self) -> None:
        """Test negative increments are rejected."""
        counters = RunCounters()
        with pytest.raises(ValueError):
            counters.incr_received(-1)
        with pytest.raises(ValueError):
            counters.incr_lost(-1)

    def test_no_lost_updates_across_threads(self) -> None:
        """Test K threads each incrementing M times yield exactly K*M."""
        counters = RunCounters()
        num_threads = 16
        increments = 5000
        barrier = threading.Barrier(num_threads)

        def worker() -> None:
            barrier.wait()
            for _ in range(increments):
                counters.incr_received()
                counters.incr_lost()

        threads = [threading.Thread(target=worker) for _ in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = counters.snapshot()
        assert snapshot.received == num_threads * increments
        assert snapshot.lost == num_threads * increments

    def test_runs_do_not_share_counters(self) -> None:
        """Test two counter pairs are independent."""
        first = RunCounters()
        second = RunCounters()
        first.incr_received()
        assert second.snapshot().received == 0

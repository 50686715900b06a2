"""Unit tests for Throttle."""

import threading

import pytest

from trace_collection import OperationCancelled, Throttle

from conftest import FakeClock, FakeResponse


class TestThrottle:
    """Test cases for Throttle."""

    def test_sleeps_when_quota_exhausted(self, throttle, clock):
        throttle.observe(FakeResponse({"X-RateLimit-Remaining": "0"}))
        assert clock.sleeps == [3.0]

    @pytest.mark.parametrize("remaining", ["1", "10", "", "00", " 0"])
    def test_no_sleep_unless_exactly_zero(self, throttle, clock, remaining):
        throttle.observe(FakeResponse({"X-RateLimit-Remaining": remaining}))
        assert clock.sleeps == []

    def test_no_sleep_without_header(self, throttle, clock):
        throttle.observe(FakeResponse({}))
        assert clock.sleeps == []

    def test_noop_without_response(self, throttle, clock):
        throttle.observe(None)
        throttle.wait()
        assert clock.sleeps == []

    def test_fixed_cooldown_on_repeated_exhaustion(self, throttle, clock):
        for _ in range(3):
            throttle.observe(FakeResponse({"X-RateLimit-Remaining": "0"}))
        assert clock.sleeps == [3.0, 3.0, 3.0]

    def test_other_workers_wait_for_shared_pause(self):
        clock = FakeClock()
        observer = Throttle(cooldown=3.0, clock=clock, sleep=lambda s: None)
        observer.observe(FakeResponse({"X-RateLimit-Remaining": "0"}))

        # A second worker sharing the throttle sees the pause one second later
        waits = []
        clock.now += 1.0
        observer.sleep = waits.append
        observer.wait()
        assert waits == [pytest.approx(2.0)]

    def test_cancelled_before_sleep(self, throttle):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(OperationCancelled):
            throttle.observe(FakeResponse({"X-RateLimit-Remaining": "0"}), cancel)

    def test_cancel_without_pause_is_ignored(self, throttle, clock):
        cancel = threading.Event()
        cancel.set()
        throttle.wait(cancel)
        assert clock.sleeps == []

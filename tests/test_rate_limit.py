"""
tests/test_rate_limit.py — Fixed-Window Upload Throttle
========================================================
10 uploads per 60 s window per user, with a fake clock so windows can be
crossed without sleeping.
"""

from __future__ import annotations

import pytest

from privatepartyy.engine.rate_limit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rl(clock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=10, window_seconds=60, clock=clock)


class TestFixedWindow:
    def test_first_ten_allowed_eleventh_rejected(self, rl):
        decisions = [rl.check_and_record("user1") for _ in range(11)]
        assert all(d.allowed for d in decisions[:10])
        assert not decisions[10].allowed
        assert decisions[10].remaining == 0
        assert decisions[10].limit == 10

    def test_remaining_counts_down(self, rl):
        assert [rl.check_and_record("u").remaining for _ in range(3)] == [9, 8, 7]

    def test_window_resets_after_sixty_seconds(self, rl, clock):
        for _ in range(10):
            rl.check_and_record("user1")
        assert not rl.check_and_record("user1").allowed

        clock.advance(60)
        decision = rl.check_and_record("user1")
        assert decision.allowed
        assert decision.remaining == 9

    def test_still_blocked_just_before_window_end(self, rl, clock):
        for _ in range(10):
            rl.check_and_record("user1")
        clock.advance(59.9)
        assert not rl.check_and_record("user1").allowed

    def test_burst_across_window_boundary_is_allowed(self, rl, clock):
        """Fixed window: 10 at the end of one window + 10 at the start of the next."""
        rl.check_and_record("user1")
        clock.advance(59)
        for _ in range(9):
            assert rl.check_and_record("user1").allowed
        clock.advance(1)
        for _ in range(10):
            assert rl.check_and_record("user1").allowed

    def test_rejections_are_not_counted(self, rl, clock):
        for _ in range(15):
            rl.check_and_record("user1")
        clock.advance(60)
        assert rl.check_and_record("user1").remaining == 9

    def test_retry_after_reflects_window_end(self, rl, clock):
        for _ in range(10):
            rl.check_and_record("user1")
        clock.advance(45)
        decision = rl.check_and_record("user1")
        assert not decision.allowed
        assert 1 <= decision.retry_after <= 16


class TestIsolation:
    def test_users_have_separate_windows(self, rl):
        for _ in range(10):
            rl.check_and_record("user1")
        assert not rl.check_and_record("user1").allowed
        assert rl.check_and_record("user2").allowed

    def test_reset_single_user(self, rl):
        for _ in range(10):
            rl.check_and_record("user1")
            rl.check_and_record("user2")
        rl.reset("user1")
        assert rl.check_and_record("user1").allowed
        assert not rl.check_and_record("user2").allowed

    def test_reset_all(self, rl):
        for _ in range(10):
            rl.check_and_record("user1")
            rl.check_and_record("user2")
        rl.reset()
        assert rl.check_and_record("user1").allowed
        assert rl.check_and_record("user2").allowed

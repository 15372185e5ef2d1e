"""Unit tests for the in-memory sliding-window rate limiter."""

import threading
from unittest.mock import Mock

import pytest

from signup_intake.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True
    result = limiter.consume("k")
    assert result.allowed is True
    assert result.remaining == 0


def test_blocks_when_over_limit() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 60


def test_eleventh_attempt_within_an_hour_is_blocked() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=10, window_seconds=3600, clock=clock)

    for minute in range(10):
        clock.return_value = minute * 60.0
        assert limiter.consume("ip:1.2.3.4").allowed is True

    clock.return_value = 59 * 60.0
    assert limiter.consume("ip:1.2.3.4").allowed is False


def test_window_rolls_instead_of_resetting_on_boundaries() -> None:
    clock = Mock(return_value=1005.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=2, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.return_value = 1009.0
    assert limiter.consume("k").allowed is True

    # A fixed 10s window would reset at 1010; the rolling window does not.
    clock.return_value = 1011.0
    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 4

    # The 1005 attempt ages out at 1015.
    clock.return_value = 1015.0
    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is False


def test_blocked_attempts_do_not_extend_the_window() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    for t in range(1, 10):
        clock.return_value = float(t)
        assert limiter.consume("k").allowed is False

    clock.return_value = 10.0
    assert limiter.consume("k").allowed is True


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_concurrent_consumers_never_exceed_limit() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=10, window_seconds=3600)
    results: list[bool] = []
    results_lock = threading.Lock()
    start = threading.Barrier(40)

    def attempt() -> None:
        start.wait()
        allowed = limiter.consume("ip:shared").allowed
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=attempt) for _ in range(40)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 10
    assert results.count(False) == 30


def test_idle_keys_are_pruned() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemorySlidingWindowRateLimiter(
        limit=5, window_seconds=10, clock=clock, prune_every=3
    )

    limiter.consume("a")
    limiter.consume("b")
    assert limiter.tracked_keys() == 2

    clock.return_value = 100.0
    limiter.consume("c")  # third call triggers the sweep

    assert limiter.tracked_keys() == 1


def test_reset_forgets_usage() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.consume("k")
    assert limiter.consume("k").allowed is False

    limiter.reset("k")
    assert limiter.consume("k").allowed is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": 60, "prune_every": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemorySlidingWindowRateLimiter(**kwargs)


def test_invalid_consume_args() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")

    with pytest.raises(ValueError):
        limiter.consume("k", cost=0)

    with pytest.raises(ValueError):
        limiter.consume("k", cost=2)

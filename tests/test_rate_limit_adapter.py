"""Unit tests for in-memory rate limiter adapter."""

from unittest.mock import Mock

import pytest

from sealbox.adapters.rate_limit.in_memory import InMemoryWindowRateLimiter


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True
    result = limiter.consume("k")
    assert result.allowed is True
    assert result.remaining == 0
    assert result.retry_after_seconds is None


def test_blocks_when_over_limit() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True

    clock.return_value = 1015.0
    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 45
    assert blocked.reset_after_seconds == 45
    assert blocked.reset_at == 1060


def test_window_opens_at_first_request() -> None:
    clock = Mock(return_value=1005.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True

    # Still inside the ten seconds that started at 1005
    clock.return_value = 1014.0
    assert limiter.consume("k").allowed is False

    clock.return_value = 1015.0
    assert limiter.consume("k").allowed is True


def test_limit_plus_one_after_window_is_accepted() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemoryWindowRateLimiter(limit=10, window_seconds=900, clock=clock)

    for _ in range(10):
        assert limiter.consume("ip:1.2.3.4").allowed is True
    assert limiter.consume("ip:1.2.3.4").allowed is False

    clock.return_value = 900.0
    assert limiter.consume("ip:1.2.3.4").allowed is True


def test_blocked_requests_do_not_extend_window() -> None:
    clock = Mock(return_value=100.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    for now in (101.0, 105.0, 109.0):
        clock.return_value = now
        assert limiter.consume("k").allowed is False

    clock.return_value = 110.0
    assert limiter.consume("k").allowed is True


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_expired_identities_are_forgotten() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    limiter.consume("k1")
    limiter.consume("k2")
    assert len(limiter) == 2

    clock.return_value = 1061.0
    limiter.consume("k3")
    assert len(limiter) == 1


def test_reset_clears_all_state() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=lambda: 1000.0)

    limiter.consume("k")
    assert limiter.consume("k").allowed is False

    limiter.reset()
    assert len(limiter) == 0
    assert limiter.consume("k").allowed is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryWindowRateLimiter(**kwargs)


def test_invalid_consume_args() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")

    with pytest.raises(ValueError):
        limiter.consume("k", cost=0)

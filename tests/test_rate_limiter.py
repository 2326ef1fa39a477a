"""Tests for the per-client rate limit counters."""

import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.rate_limiter import (
    AUTHENTICATION,
    DEFAULT_POLICIES,
    REGISTRATION,
    RateLimitDecision,
    RateLimiter,
    RateLimitPolicy,
)


@pytest.fixture
def limiter():
    return RateLimiter()


def test_default_policies():
    assert {name: (p.max_requests, p.window_seconds) for name, p in DEFAULT_POLICIES.items()} == {
        "authentication": (5, 900),
        "registration": (3, 3600),
        "refresh": (10, 900),
        "api": (100, 900),
    }
    assert DEFAULT_POLICIES["api"].skip_successful is True
    assert not AUTHENTICATION.skip_successful


def test_sixth_authentication_attempt_is_rejected(limiter):
    decisions = [limiter.check_and_increment("authentication", "1.2.3.4") for _ in range(6)]

    assert [d.allowed for d in decisions] == [True] * 5 + [False]
    assert [d.remaining for d in decisions[:5]] == [4, 3, 2, 1, 0]
    assert decisions[-1].remaining == 0
    assert decisions[-1].limit == 5


def test_rejected_requests_do_not_extend_window(limiter):
    first = limiter.check_and_increment(REGISTRATION, "1.2.3.4")
    for _ in range(5):
        last = limiter.check_and_increment(REGISTRATION, "1.2.3.4")

    assert not last.allowed
    assert last.reset_at == pytest.approx(first.reset_at, abs=1)


def test_window_resets_after_expiry(limiter):
    burst = RateLimitPolicy(name="burst", max_requests=2, window_seconds=1, message="slow down")

    assert limiter.check_and_increment(burst, "1.2.3.4").allowed
    assert limiter.check_and_increment(burst, "1.2.3.4").allowed
    assert not limiter.check_and_increment(burst, "1.2.3.4").allowed

    time.sleep(1.1)

    decision = limiter.check_and_increment(burst, "1.2.3.4")
    assert decision.allowed
    assert decision.remaining == 1


def test_clients_are_counted_separately(limiter):
    for _ in range(5):
        limiter.check_and_increment("authentication", "1.1.1.1")

    assert not limiter.check_and_increment("authentication", "1.1.1.1").allowed
    assert limiter.check_and_increment("authentication", "2.2.2.2").allowed


def test_policies_are_counted_separately(limiter):
    for _ in range(5):
        limiter.check_and_increment("authentication", "1.1.1.1")

    assert limiter.check_and_increment("refresh", "1.1.1.1").allowed
    assert limiter.check_and_increment("registration", "1.1.1.1").allowed


def test_peek_does_not_count(limiter):
    for _ in range(10):
        decision = limiter.peek("api", "1.1.1.1")
    assert decision.allowed
    assert decision.remaining == 100


def test_record_counts_until_peek_rejects(limiter):
    for _ in range(100):
        limiter.record("api", "1.1.1.1")

    decision = limiter.peek("api", "1.1.1.1")
    assert not decision.allowed
    assert decision.remaining == 0


def test_reset_clears_counters(limiter):
    for _ in range(6):
        limiter.check_and_increment("authentication", "1.1.1.1")
    limiter.reset()
    assert limiter.check_and_increment("authentication", "1.1.1.1").allowed


def test_disabled_limiter_always_allows():
    limiter = RateLimiter(enabled=False)
    decisions = [limiter.check_and_increment("authentication", "1.1.1.1") for _ in range(20)]
    assert all(d.allowed for d in decisions)
    assert decisions[-1].remaining == 5


def test_unknown_policy_raises(limiter):
    with pytest.raises(ValueError, match="Unknown rate limit policy"):
        limiter.check_and_increment("nope", "1.1.1.1")


def test_decision_headers():
    decision = RateLimitDecision(
        policy="authentication", allowed=True, limit=5, remaining=3, reset_at=time.time() + 60
    )
    headers = decision.headers()
    assert headers["RateLimit-Limit"] == "5"
    assert headers["RateLimit-Remaining"] == "3"
    assert 59 <= int(headers["RateLimit-Reset"]) <= 60
    assert "Retry-After" not in headers


def test_rejected_decision_has_retry_after():
    decision = RateLimitDecision(
        policy="authentication", allowed=False, limit=5, remaining=0, reset_at=time.time() + 30
    )
    headers = decision.headers()
    assert headers["Retry-After"] == headers["RateLimit-Reset"]


def test_reset_after_never_negative():
    decision = RateLimitDecision(policy="x", allowed=True, limit=1, remaining=1, reset_at=100.0)
    assert decision.reset_after(now=200.0) == 0
    assert decision.reset_after(now=99.5) == 1


def test_memory_storage_is_healthy(limiter):
    assert limiter.is_healthy()


def test_concurrent_increments_admit_exactly_the_threshold(limiter):
    def burst(_):
        return [limiter.check_and_increment("api", "1.1.1.1").allowed for _ in range(50)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [allowed for batch in pool.map(burst, range(8)) for allowed in batch]

    assert len(results) == 400
    assert results.count(True) == 100

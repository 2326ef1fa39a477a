"""
Rate Limiter
============

Per-client fixed-window request counters with one policy per endpoint class.

Counters are keyed by ``(policy, client key)`` and live in a ``limits``
storage backend, the same engine slowapi is built on. Increments are a
single atomic storage operation, so simultaneous requests from one client
cannot undercount. Windows expire lazily: the first access after a window
has elapsed starts a new one.

Once a window's count reaches the threshold every further request in that
window is rejected. Rejected requests are still counted but never move the
window's expiry, so the block lasts exactly until the window ends.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """
    A window/threshold pair for one class of endpoints.

    Attributes:
        name: Policy identifier, part of the counter key
        max_requests: Requests allowed per window
        window_seconds: Window length
        message: Message returned to throttled clients
        skip_successful: Only count responses with status >= 400
    """
    name: str
    max_requests: int
    window_seconds: int
    message: str
    skip_successful: bool = False

    @property
    def item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.max_requests, self.window_seconds)


AUTHENTICATION = RateLimitPolicy(
    name="authentication",
    max_requests=5,
    window_seconds=15 * 60,
    message="Too many authentication attempts, please try again later",
)

REGISTRATION = RateLimitPolicy(
    name="registration",
    max_requests=3,
    window_seconds=60 * 60,
    message="Too many registration attempts, please try again later",
)

REFRESH = RateLimitPolicy(
    name="refresh",
    max_requests=10,
    window_seconds=15 * 60,
    message="Too many token refresh attempts, please try again later",
)

GENERAL_API = RateLimitPolicy(
    name="api",
    max_requests=100,
    window_seconds=15 * 60,
    message="Too many requests, please try again later",
    skip_successful=True,
)

DEFAULT_POLICIES: dict[str, RateLimitPolicy] = {
    policy.name: policy
    for policy in (AUTHENTICATION, REGISTRATION, REFRESH, GENERAL_API)
}


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check, plus the quota metadata to expose."""
    policy: str
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def reset_after(self, now: Optional[float] = None) -> int:
        """Whole seconds until the current window resets."""
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

    def headers(self) -> dict[str, str]:
        """Standard ``RateLimit-*`` response headers for this decision."""
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after()),
        }
        if not self.allowed:
            headers["Retry-After"] = headers["RateLimit-Reset"]
        return headers


class RateLimiter:
    """
    Evaluate rate limit policies against per-client counters.

    Args:
        policies: Known policies by name
        storage_uri: ``limits`` storage URI (memory://, redis://...)
        enabled: When False every decision allows and nothing is counted
    """

    def __init__(
        self,
        policies: Optional[Mapping[str, RateLimitPolicy]] = None,
        storage_uri: str = "memory://",
        enabled: bool = True,
    ):
        self.policies = dict(policies or DEFAULT_POLICIES)
        self.enabled = enabled
        self.storage = storage_from_string(storage_uri)
        self._strategy = FixedWindowRateLimiter(self.storage)

    def policy(self, policy: Union[str, RateLimitPolicy]) -> RateLimitPolicy:
        if isinstance(policy, RateLimitPolicy):
            return policy
        try:
            return self.policies[policy]
        except KeyError:
            raise ValueError(f"Unknown rate limit policy: {policy}") from None

    def check_and_increment(
        self, policy: Union[str, RateLimitPolicy], client_key: str
    ) -> RateLimitDecision:
        """
        Count a request and decide whether it may proceed.

        Args:
            policy: Policy name or instance
            client_key: Client identifier, usually the remote address

        Returns:
            RateLimitDecision for this request
        """
        resolved = self.policy(policy)
        if not self.enabled:
            return self._unthrottled(resolved)

        allowed = self._strategy.hit(resolved.item, resolved.name, client_key)
        decision = self._decision(resolved, client_key, allowed)
        if not allowed:
            logger.warning(
                f"Rate limit '{resolved.name}' exceeded for {client_key} "
                f"(resets in {decision.reset_after()}s)"
            )
        return decision

    def peek(
        self, policy: Union[str, RateLimitPolicy], client_key: str
    ) -> RateLimitDecision:
        """
        Decide whether a request may proceed without counting it.

        Used by policies that only count failed responses: the request is
        admitted on ``peek`` and charged afterwards with ``record``.
        """
        resolved = self.policy(policy)
        if not self.enabled:
            return self._unthrottled(resolved)

        allowed = self._strategy.test(resolved.item, resolved.name, client_key)
        decision = self._decision(resolved, client_key, allowed)
        if not allowed:
            logger.warning(f"Rate limit '{resolved.name}' exceeded for {client_key}")
        return decision

    def record(
        self, policy: Union[str, RateLimitPolicy], client_key: str
    ) -> RateLimitDecision:
        """Charge a finished request to the client's current window."""
        resolved = self.policy(policy)
        if not self.enabled:
            return self._unthrottled(resolved)

        self._strategy.hit(resolved.item, resolved.name, client_key)
        return self._decision(resolved, client_key, True)

    def reset(self) -> None:
        """Drop every counter."""
        self.storage.reset()

    def is_healthy(self) -> bool:
        return bool(self.storage.check())

    def _decision(
        self, policy: RateLimitPolicy, client_key: str, allowed: bool
    ) -> RateLimitDecision:
        reset_at, remaining = self._strategy.get_window_stats(
            policy.item, policy.name, client_key
        )
        now = time.time()
        if reset_at <= now:
            # No live window for this key yet
            reset_at = now + policy.window_seconds
        return RateLimitDecision(
            policy=policy.name,
            allowed=allowed,
            limit=policy.max_requests,
            remaining=remaining,
            reset_at=reset_at,
        )

    def _unthrottled(self, policy: RateLimitPolicy) -> RateLimitDecision:
        return RateLimitDecision(
            policy=policy.name,
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests,
            reset_at=time.time() + policy.window_seconds,
        )

"""
Rate Limiting Middleware
========================

HTTP wiring for ``core.rate_limiter``:

- The general API policy runs as middleware on every request, unknown
  routes included. It admits a request while the client's window has
  quota left and charges only responses with status >= 400.
- Endpoint policies (authentication, registration, refresh) run as route
  dependencies and charge every request.
- Every response carries ``RateLimit-Limit``, ``RateLimit-Remaining`` and
  ``RateLimit-Reset``. When an endpoint policy ran, its numbers are the ones
  reported.

Clients are keyed by remote address (slowapi's ``get_remote_address``).

Usage in routes:
    from api.middleware.rate_limiter import RateLimit

    @router.post("/login", dependencies=[Depends(RateLimit("authentication"))])
    def login(...):
        ...
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from slowapi.util import get_remote_address

from api.middleware.error_handler import error_response
from config import Settings
from core.rate_limiter import GENERAL_API, RateLimitDecision, RateLimiter
from exceptions import ServiceError


logger = logging.getLogger(__name__)


def client_key(request: Request) -> str:
    """Identifier used to bucket a request's rate limit counters."""
    return get_remote_address(request)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


class RateLimit:
    """
    Route dependency enforcing one rate limit policy.

    A counter storage failure propagates to the error middleware, so the
    endpoint answers 500 rather than running unthrottled.

    Args:
        policy: Name of a policy known to the app's RateLimiter
    """

    def __init__(self, policy: str):
        self.policy = policy

    def __call__(self, request: Request) -> RateLimitDecision:
        limiter = get_rate_limiter(request)
        decision = limiter.check_and_increment(self.policy, client_key(request))
        request.state.rate_limit = decision

        if not decision.allowed:
            raise ServiceError.rate_limited(
                limiter.policy(self.policy).message,
                headers=decision.headers(),
            )
        return decision


async def rate_limit_middleware(request: Request, call_next):
    """
    Apply the general API policy and attach quota headers to the response.

    If the counter storage fails, the request is admitted without quota
    headers. The failure is logged and /api/health reports it as degraded.
    """
    limiter = get_rate_limiter(request)
    key = client_key(request)

    try:
        decision: Optional[RateLimitDecision] = limiter.peek(GENERAL_API.name, key)
    except Exception as e:
        logger.error(f"Rate limit storage unavailable, admitting request: {e}")
        decision = None

    if decision is not None and not decision.allowed:
        response = error_response(ServiceError.rate_limited(GENERAL_API.message))
        response.headers.update(decision.headers())
        return response

    response = await call_next(request)
    if decision is not None and response.status_code >= 400:
        try:
            decision = limiter.record(GENERAL_API.name, key)
        except Exception as e:
            logger.error(f"Rate limit storage unavailable, failure not counted: {e}")
            decision = None

    reported = getattr(request.state, "rate_limit", None) or decision
    if reported is not None:
        response.headers.update(reported.headers())
    return response


def setup_rate_limiting(
    app: FastAPI, settings: Settings, limiter: Optional[RateLimiter] = None
) -> RateLimiter:
    """
    Set up rate limiting for the FastAPI application.

    Attaches the limiter to the app state for access in dependencies
    and registers the general API middleware.

    Args:
        app: The FastAPI application instance
        settings: Application settings (storage URI, enabled flag)
        limiter: Pre-built limiter to use instead of one built from settings

    Returns:
        RateLimiter: The limiter attached to the app
    """
    if limiter is None:
        limiter = RateLimiter(
            storage_uri=settings.rate_limit_storage_uri,
            enabled=settings.rate_limit_enabled,
        )

    app.state.rate_limiter = limiter
    app.middleware("http")(rate_limit_middleware)
    return limiter

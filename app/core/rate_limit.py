"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on dependency functions only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- One process-wide limiter: built once, its sweeper started with the app and
  stopped on shutdown.

Rate limiting strategy:
- Sliding-window limit per client identity (see app.core.identity).
- Denied requests get HTTP 429 with Retry-After and X-RateLimit-* headers.
"""

from __future__ import annotations

import hashlib
import logging
import threading

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, Decision, UsageStatus
from app.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from app.adapters.rate_limit.window_store import WindowStore
from app.core.config import settings
from app.core.errors import RateLimitAppError
from app.core.identity import resolve_client_identity

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, int] | None = None
_limiter_lock = threading.Lock()


def _current_config() -> tuple[int, int, int]:
    return (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_ms,
        settings.app.rate_limit_sweep_interval_ms,
    )


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance, starting its sweeper.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the previous limiter is
    closed and a new one is built with a fresh store.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = _current_config()
    with _limiter_lock:
        if _limiter is None or _limiter_config != config:
            if _limiter is not None:
                _limiter.close()
            limit, window_ms, sweep_interval_ms = config
            _limiter = SlidingWindowRateLimiter(
                limit=limit,
                window_ms=window_ms,
                sweep_interval_ms=sweep_interval_ms,
                store=WindowStore(),
            )
            _limiter_config = config
            _limiter.start()
            logger.info(
                "rate_limit.configured",
                extra={
                    "limit": limit,
                    "window_ms": window_ms,
                    "sweep_interval_ms": sweep_interval_ms,
                },
            )
        return _limiter


def peek_rate_limiter() -> AbstractRateLimiter | None:
    """Return the process-wide limiter if one was built, without creating it."""

    return _limiter


def shutdown_rate_limiter() -> None:
    """Stop the process-wide limiter's sweeper and drop the instance."""

    global _limiter, _limiter_config

    with _limiter_lock:
        if _limiter is not None:
            _limiter.close()
        _limiter = None
        _limiter_config = None


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def build_rate_limit_headers(decision: Decision) -> dict[str, str]:
    """Build X-RateLimit-* headers (plus Retry-After when denied)."""

    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": decision.reset_at_datetime.isoformat(),
    }
    if decision.retry_after_seconds is not None:
        headers["Retry-After"] = str(decision.retry_after_seconds)
    return headers


async def enforce_rate_limit(request: Request, response: Response) -> Decision | None:
    """FastAPI dependency enforcing rate limits.

    When enabled, admits one request for the caller's identity. Allowed
    requests get X-RateLimit-* headers on the response; denied ones raise
    RateLimitAppError, rendered as HTTP 429 by the exception handlers.

    Args:
        request: FastAPI request.
        response: Response whose headers are updated on success.

    Returns:
        The admission Decision, or None when rate limiting is disabled.

    Raises:
        RateLimitAppError: When the caller exceeded its quota.
    """

    if not settings.app.rate_limit_enabled:
        return None

    limiter = get_rate_limiter()
    identity = resolve_client_identity(request)
    key_hash = _hash_limiter_key(identity)

    decision = limiter.admit(identity)
    include_headers = settings.app.rate_limit_include_headers

    if decision.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_ms": decision.window_ms,
            },
        )
        if include_headers:
            response.headers.update(build_rate_limit_headers(decision))
        return decision

    retry_after = decision.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_ms": decision.window_ms,
            "retry_after_s": retry_after,
        },
    )

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_at": decision.reset_at_datetime.isoformat(),
            "retry_after": retry_after,
        },
        headers=build_rate_limit_headers(decision) if include_headers else None,
    )


async def get_rate_limit_status(request: Request) -> UsageStatus:
    """FastAPI dependency returning the caller's usage without consuming quota."""

    limiter = get_rate_limiter()
    return limiter.status(resolve_client_identity(request))

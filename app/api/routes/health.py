from __future__ import annotations

from fastapi import APIRouter

from app.core.rate_limit import peek_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.
    Once the process-wide rate limiter exists, its store size and sweeper state
    are included so memory growth can be watched without scraping logs.

    Returns:
        dict: ``{"status": "ok"}`` plus an optional ``rate_limiter`` block.
    """

    body: dict = {"status": "ok"}
    limiter = peek_rate_limiter()
    if limiter is not None:
        body["rate_limiter"] = limiter.stats()
    return body

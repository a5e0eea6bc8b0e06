"""Client identity extraction for rate limiting.

Requests that resolve to the same identity share one quota pool. Resolution
order:

1. First address in ``X-Forwarded-For`` (when forwarded headers are trusted)
2. ``X-Real-IP`` (when forwarded headers are trusted)
3. Direct connection host
4. The constant ``"unknown"``
"""

from __future__ import annotations

from fastapi import Request

from app.core.config import settings

UNKNOWN_IDENTITY = "unknown"


def _first_forwarded_address(header_value: str | None) -> str | None:
    """Return the client entry of an ``X-Forwarded-For`` chain.

    Examples:
        >>> _first_forwarded_address("203.0.113.7, 10.0.0.1")
        '203.0.113.7'
        >>> _first_forwarded_address(" , 10.0.0.1") is None
        True
    """
    if not header_value:
        return None
    first = header_value.split(",")[0].strip()
    return first or None


def resolve_client_identity(request: Request, *, trust_forwarded: bool | None = None) -> str:
    """Derive the rate limit identity for ``request``.

    Args:
        request: Incoming request.
        trust_forwarded: Override for ``APP_RATE_LIMIT_TRUST_FORWARDED_HEADERS``.

    Returns:
        Non-empty identity string.
    """

    if trust_forwarded is None:
        trust_forwarded = settings.app.rate_limit_trust_forwarded_headers

    if trust_forwarded:
        forwarded = _first_forwarded_address(request.headers.get("x-forwarded-for"))
        if forwarded:
            return forwarded

        real_ip = (request.headers.get("x-real-ip") or "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IDENTITY

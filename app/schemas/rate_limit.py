"""Pydantic schemas for rate limit responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.adapters.rate_limit.base import Decision, UsageStatus


class RateLimitDecisionResponse(BaseModel):
    """Admission decision for the calling client.

    Quota fields are null when rate limiting is disabled.
    """

    allowed: bool = Field(..., description="Whether the request was admitted.")
    limit: int | None = Field(
        default=None, description="Maximum admitted requests per window."
    )
    remaining: int | None = Field(
        default=None, description="Requests left in the current window (0 when denied)."
    )
    reset_at: datetime | None = Field(
        default=None,
        description="Estimated reset instant (UTC): one full window after the decision.",
    )
    window_ms: int | None = Field(
        default=None, description="Trailing window size in milliseconds."
    )

    @classmethod
    def from_decision(cls, decision: Decision | None) -> "RateLimitDecisionResponse":
        if decision is None:
            return cls(allowed=True)
        return cls(
            allowed=decision.allowed,
            limit=decision.limit,
            remaining=decision.remaining,
            reset_at=decision.reset_at_datetime,
            window_ms=decision.window_ms,
        )


class RateLimitStatusResponse(BaseModel):
    """Current usage for the calling client. Reading it consumes no quota."""

    current: int = Field(..., description="Requests counted in the trailing window.")
    limit: int = Field(..., description="Maximum admitted requests per window.")
    remaining: int = Field(..., description="Requests left in the current window.")

    @classmethod
    def from_status(cls, status: UsageStatus) -> "RateLimitStatusResponse":
        return cls(current=status.current, limit=status.limit, remaining=status.remaining)

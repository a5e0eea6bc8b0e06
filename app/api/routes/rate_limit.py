from fastapi import APIRouter, Depends

from app.adapters.rate_limit.base import Decision, UsageStatus
from app.core.rate_limit import enforce_rate_limit, get_rate_limit_status
from app.schemas.rate_limit import RateLimitDecisionResponse, RateLimitStatusResponse

router = APIRouter(prefix="/rate-limit", tags=["Rate Limit"])


@router.post("/check", response_model=RateLimitDecisionResponse)
async def check_rate_limit(
    decision: Decision | None = Depends(enforce_rate_limit),
) -> RateLimitDecisionResponse:
    """Consume one request from the caller's quota.

    Returns the admission decision when the request is allowed. When the quota
    is exhausted the dependency rejects the request with HTTP 429 before this
    handler runs.

    Returns:
        RateLimitDecisionResponse: Decision with remaining quota and reset time.
    """
    return RateLimitDecisionResponse.from_decision(decision)


@router.get("/status", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    usage: UsageStatus = Depends(get_rate_limit_status),
) -> RateLimitStatusResponse:
    """Report the caller's usage without consuming quota."""
    return RateLimitStatusResponse.from_status(usage)

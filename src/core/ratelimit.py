"""Rate limiting for the estimation endpoints using Upstash Redis.

Every accepted submission opens an upstream model stream, so submissions are
limited per client. Falls back to allowing requests when Upstash is not
configured (development/test environments) or when Redis is unreachable.
"""

from __future__ import annotations

import logging
import time
import uuid
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status

from core.config import Settings, get_settings


if TYPE_CHECKING:
    from upstash_ratelimit import Ratelimit

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "estimation:ratelimit"


@lru_cache
def get_ratelimiter() -> Ratelimit | None:
    """Create and cache the rate limiter instance.

    Returns None if Upstash is not configured.
    """
    from upstash_ratelimit import Ratelimit, SlidingWindow
    from upstash_redis import Redis

    settings = get_settings()

    if not settings.UPSTASH_REDIS_REST_URL or not settings.UPSTASH_REDIS_REST_TOKEN:
        logger.warning(
            "Upstash Redis not configured. Rate limiting is disabled. "
            "Set UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN to enable."
        )
        return None

    try:
        redis = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
        ratelimit = Ratelimit(
            redis=redis,
            limiter=SlidingWindow(
                max_requests=settings.RATE_LIMIT_REQUESTS,
                window=settings.RATE_LIMIT_WINDOW_SECONDS,
            ),
            prefix=RATE_LIMIT_PREFIX,
        )
    except Exception as e:
        logger.error("Failed to initialize rate limiter: %s", e)
        return None

    logger.info(
        "Rate limiting enabled: %d estimation requests per %d seconds",
        settings.RATE_LIMIT_REQUESTS,
        settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    return ratelimit


def _get_client_identifier(request: Request) -> str:
    """Client key for the limiter: first X-Forwarded-For hop, else peer IP."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    # Unidentifiable clients must not share one bucket
    return f"unknown:{uuid.uuid4()}"


async def check_rate_limit(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """FastAPI dependency enforcing the per-client estimation limit.

    Raises HTTPException(429) with a `Retry-After` header when exceeded.

    Usage:
        @router.post("", dependencies=[Depends(check_rate_limit)])
        async def submit_estimation(...): ...
    """
    ratelimiter = get_ratelimiter()
    if ratelimiter is None:
        return

    identifier = _get_client_identifier(request)

    try:
        response = ratelimiter.limit(identifier)
    except Exception as e:
        logger.error("Rate limit check failed: %s", e)
        return

    if response.allowed:
        return

    current_time_ms = int(time.time() * 1000)
    retry_after = max(1, (response.reset - current_time_ms) // 1000)
    logger.warning(
        "Rate limit exceeded for %s on %s. Reset in %d seconds.",
        identifier,
        request.url.path,
        retry_after,
    )
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests. Please try again later.",
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(settings.RATE_LIMIT_REQUESTS),
            "X-RateLimit-Remaining": str(response.remaining),
        },
    )

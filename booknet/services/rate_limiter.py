"""
Request Throttling

slowapi limits, applied per route with @limiter.limit(...):
- settings.rate_limit_default for listings and lookups
- settings.rate_limit_write for publish, borrow, return, approve,
  toggles, cover upload and feedback

A request carrying a valid access token is counted against its member,
so members behind one proxy do not share a budget. Anything else is
counted against its client address. Counters live in Redis when
REDIS_URL is set, in process memory otherwise.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from booknet.config import get_settings
from booknet.services.security import read_member_id

logger = logging.getLogger(__name__)
settings = get_settings()

RETRY_AFTER_SECONDS = 60


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the peer address."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def throttle_key(request: Request) -> str:
    """
    Bucket a request is counted in.

    Returns:
        "member:<id>" for a valid bearer token, "ip:<address>" otherwise
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        member_id = read_member_id(token.strip())
        if member_id is not None:
            return f"member:{member_id}"

    return f"ip:{client_address(request)}"


limiter = Limiter(
    key_func=throttle_key,
    default_limits=[settings.rate_limit_default],
    storage_uri=settings.redis_url or "memory://",
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

logger.info(
    f"Throttling {'on' if settings.rate_limit_enabled else 'off'}: "
    f"reads {settings.rate_limit_default}, writes {settings.rate_limit_write}"
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same {"detail", "code"} shape as lending errors."""
    limit = str(exc.detail)
    logger.warning(f"Throttled {throttle_key(request)}: {limit}")

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests, please slow down",
            "code": "rate_limit_exceeded",
            "limit": limit,
        },
        headers={
            "Retry-After": str(RETRY_AFTER_SECONDS),
            "X-RateLimit-Limit": limit,
        },
    )

"""Fixed-window rate limiting for the quote/estimate surface.

Quotes are recomputed on every UI keystroke, so they are the only endpoints
throttled here. Settlement and redistribution are internal and idempotent.

Redis logic:
    count = INCR ratelimit:{client_ip}:quote
    first hit -> EXPIRE 60
    count > QUOTE_RATE_LIMIT_PER_MIN -> RateLimitError (9001)
"""

from fastapi import Request

from config.settings import settings
from src.bm_common.errors import RateLimitError
from src.bm_common.redis_client import get_redis

_WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    """Real client IP behind a reverse proxy (first X-Forwarded-For hop)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_quote_rate_limit(request: Request) -> None:
    """FastAPI dependency applied to the quote router."""
    if settings.QUOTE_RATE_LIMIT_PER_MIN <= 0:
        return
    redis = await get_redis()
    key = f"ratelimit:{client_ip(request)}:quote"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, _WINDOW_SECONDS)
    if count > settings.QUOTE_RATE_LIMIT_PER_MIN:
        raise RateLimitError()

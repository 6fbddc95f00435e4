"""
Rate limiting for ledger-mutating endpoints using Redis and SlowAPI.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
import redis
import logging

from api.config import settings

logger = logging.getLogger(__name__)

# Initialize Redis client
redis_client = None
if settings.redis_enabled and settings.rate_limit_enabled:
    try:
        redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5
        )
        # Test connection
        redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        logger.warning("Rate limiting will not work without Redis")
        redis_client = None


def get_client_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting.

    Uses the peer address only. Client-supplied X-Forwarded-For is not
    trusted; behind a proxy, run uvicorn with --proxy-headers and
    --forwarded-allow-ips so the peer address is rewritten upstream.
    """
    return f"ip:{get_remote_address(request)}"


# Initialize limiter
limiter = Limiter(
    key_func=get_client_identifier,
    enabled=settings.rate_limit_enabled and redis_client is not None,
    storage_uri=settings.redis_url if redis_client else "memory://",
    strategy="fixed-window"
)


def get_rate_limit_string() -> str:
    """
    Get rate limit string for use with @limiter.limit() decorator.

    Returns:
        str: Rate limit string (e.g., "60/minute")
    """
    return f"{settings.rate_limit_per_minute}/minute"

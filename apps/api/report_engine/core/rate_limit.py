"""Rate limiting configuration for the report API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from report_engine.core.config import settings

# Redis storage for multi-worker deployments, in-memory for tests and local dev
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)


def _build_limiter() -> Limiter:
    if IS_TESTING:
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
            enabled=False,
        )

    import redis

    try:
        redis.from_url(REDIS_URL, socket_connect_timeout=1).ping()
    except redis.RedisError as e:
        logging.getLogger(__name__).warning(
            "Redis unavailable for rate limiting, using in-memory: %s", e
        )
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
        )
    return Limiter(
        key_func=get_remote_address,
        storage_uri=REDIS_URL,
        default_limits=DEFAULT_LIMITS,
    )


limiter = _build_limiter()

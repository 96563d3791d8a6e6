"""Optional Redis connection pool.

Redis backs rate limiting and live notification push. Both degrade to no-ops
when ``DNA_REDIS_URL`` is empty, so the pool may legitimately be absent.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the shared client for ``url``."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_optional_redis() -> redis.Redis | None:
    """The shared client, or None when Redis is not configured (FastAPI dependency)."""
    return _pool


async def redis_status() -> str:
    """``ok``, ``disabled`` or ``error: ...`` for the readiness probe."""
    if _pool is None:
        return "disabled"
    try:
        await _pool.ping()
    except (RedisError, OSError) as exc:
        return f"error: {exc}"
    return "ok"

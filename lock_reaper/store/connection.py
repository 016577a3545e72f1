"""
Redis connection management.
Handles the shared connection pool and scoped connection acquisition.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import redis

from lock_reaper.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global pool instance
_pool: redis.ConnectionPool | None = None


def build_redis_pool_kwargs(settings: Settings | None = None) -> dict[str, Any]:
    """
    Build keyword arguments for the Redis connection pool.

    Args:
        settings: Settings to read from. Defaults to the cached settings.

    Returns:
        Keyword arguments for ``redis.ConnectionPool.from_url``.
    """
    resolved_settings = settings or get_settings()
    kwargs: dict[str, Any] = {
        "decode_responses": True,
        "socket_connect_timeout": resolved_settings.redis_socket_connect_timeout,
        "socket_keepalive": resolved_settings.redis_socket_keepalive,
        "health_check_interval": resolved_settings.redis_health_check_interval,
        "retry_on_timeout": resolved_settings.redis_retry_on_timeout,
    }

    if resolved_settings.redis_max_connections is not None:
        kwargs["max_connections"] = resolved_settings.redis_max_connections

    return kwargs


def get_connection_pool() -> redis.ConnectionPool:
    """
    Get or create the Redis connection pool.

    Returns:
        ConnectionPool: The shared connection pool.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            **build_redis_pool_kwargs(settings),
        )
        logger.info("Redis connection pool initialized")
    return _pool


def close_redis() -> None:
    """
    Disconnect the Redis connection pool.
    Should be called on shutdown.
    """
    global _pool
    if _pool is not None:
        _pool.disconnect()
        _pool = None
        logger.info("Redis connection pool closed")


@contextmanager
def redis_connection() -> Generator[redis.Redis]:
    """
    Context manager holding one pooled connection for the duration of a block.

    Yields:
        Redis: A client bound to a single connection.
    """
    client = redis.Redis(
        connection_pool=get_connection_pool(),
        single_connection_client=True,
    )
    try:
        yield client
    finally:
        client.close()

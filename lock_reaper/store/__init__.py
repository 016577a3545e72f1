"""
Store module.
Contains Redis connection provisioning and the server-side Lua scripts.
"""

from lock_reaper.store.connection import (
    build_redis_pool_kwargs,
    close_redis,
    get_connection_pool,
    redis_connection,
)
from lock_reaper.store.scripts import LuaScripts, call_script

__all__ = [
    "build_redis_pool_kwargs",
    "get_connection_pool",
    "redis_connection",
    "close_redis",
    "LuaScripts",
    "call_script",
]

"""Centralized Lua scripts for Redis atomic operations.

Every script executes as one indivisible operation on the server: no job can
move between the live-job sources while it runs and no partial deletion is
ever observable. The price is that Redis serves nothing else until the
script returns, so callers bound the work with a batch size.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from lock_reaper.constants import SCRIPT_REAP_ORPHANS

if TYPE_CHECKING:
    from redis import Redis


class LuaScripts:
    """Container for Redis Lua scripts.

    Usage:
        deleted = call_script(
            "reap_orphans",
            conn,
            keys=[DIGESTS, SCHEDULE, RETRY],
            argv=[batch_size, QUEUES, QUEUE_PREFIX, page_size, scan_count, *suffixes],
        )
    """

    # ─────────────────────────────────────────────────────────────────────────
    # ORPHAN REAPING
    # ─────────────────────────────────────────────────────────────────────────

    REAP_ORPHANS: str = (
        # Find and delete digests that no scheduled, retried or queued job references.
        #
        # KEYS[1]: lock registry (sorted set of digests)
        # KEYS[2]: scheduled jobs (sorted set)
        # KEYS[3]: retried jobs (sorted set)
        # ARGV[1]: batch size, maximum number of digests to delete
        # ARGV[2]: set of queue names
        # ARGV[3]: queue key prefix
        # ARGV[4]: page size for registry and queue reads
        # ARGV[5]: COUNT hint for ZSCAN
        # ARGV[6..]: lock key suffixes deleted as "<digest>:<suffix>"
        #
        # Returns:
        #   Number of digests deleted.
        #
        # INVARIANT: Orphans are collected before anything is deleted, so the
        # registry pages do not shift under the scan.
        # INVARIANT: Glob metacharacters in a digest are escaped before ZSCAN
        # MATCH, so a digest only ever matches itself as a substring.
        "local digests_key = KEYS[1]\n"
        "local schedule_key = KEYS[2]\n"
        "local retry_key = KEYS[3]\n"
        "local batch_size = tonumber(ARGV[1])\n"
        "local queues_key = ARGV[2]\n"
        "local queue_prefix = ARGV[3]\n"
        "local page_size = tonumber(ARGV[4])\n"
        "local scan_count = tonumber(ARGV[5])\n"
        "local suffixes = {}\n"
        "for i = 6, #ARGV do\n"
        "  table.insert(suffixes, ARGV[i])\n"
        "end\n"
        "\n"
        "local function in_sorted_set(key, digest)\n"
        "  local escaped = string.gsub(digest, '([%*%?%[%]\\\\])', '\\\\%1')\n"
        "  local pattern = '*' .. escaped .. '*'\n"
        "  local cursor = '0'\n"
        "  repeat\n"
        "    local result = redis.call('ZSCAN', key, cursor, 'MATCH', pattern, 'COUNT', scan_count)\n"
        "    cursor = result[1]\n"
        "    if #result[2] > 0 then\n"
        "      return true\n"
        "    end\n"
        "  until tonumber(cursor) == 0\n"
        "  return false\n"
        "end\n"
        "\n"
        "local function in_queues(digest)\n"
        "  local cursor = '0'\n"
        "  repeat\n"
        "    local result = redis.call('SSCAN', queues_key, cursor)\n"
        "    cursor = result[1]\n"
        "    for _, queue in ipairs(result[2]) do\n"
        "      local queue_key = queue_prefix .. queue\n"
        "      local size = redis.call('LLEN', queue_key)\n"
        "      local index = 0\n"
        "      while index < size do\n"
        "        local entries = redis.call('LRANGE', queue_key, index, index + page_size - 1)\n"
        "        for _, entry in ipairs(entries) do\n"
        "          if string.find(entry, digest, 1, true) then\n"
        "            return true\n"
        "          end\n"
        "        end\n"
        "        index = index + page_size\n"
        "      end\n"
        "    end\n"
        "  until tonumber(cursor) == 0\n"
        "  return false\n"
        "end\n"
        "\n"
        "local orphans = {}\n"
        "local total = redis.call('ZCARD', digests_key)\n"
        "local index = 0\n"
        "while index < total and #orphans < batch_size do\n"
        "  local digests = redis.call('ZREVRANGE', digests_key, index, index + page_size - 1)\n"
        "  for _, digest in ipairs(digests) do\n"
        "    if not (in_sorted_set(schedule_key, digest)\n"
        "        or in_sorted_set(retry_key, digest)\n"
        "        or in_queues(digest)) then\n"
        "      table.insert(orphans, digest)\n"
        "      if #orphans >= batch_size then\n"
        "        break\n"
        "      end\n"
        "    end\n"
        "  end\n"
        "  index = index + page_size\n"
        "end\n"
        "\n"
        "local deleted = 0\n"
        "for _, digest in ipairs(orphans) do\n"
        "  local lock_keys = { digest }\n"
        "  for _, suffix in ipairs(suffixes) do\n"
        "    table.insert(lock_keys, digest .. ':' .. suffix)\n"
        "  end\n"
        "  redis.call('DEL', unpack(lock_keys))\n"
        "  deleted = deleted + redis.call('ZREM', digests_key, digest)\n"
        "end\n"
        "return deleted\n"
    )


SCRIPTS: dict[str, str] = {
    SCRIPT_REAP_ORPHANS: LuaScripts.REAP_ORPHANS,
}


def call_script(
    name: str,
    conn: "Redis",
    keys: Sequence[str],
    argv: Sequence[Any],
) -> int:
    """Run a named Lua script.

    The script is registered on the client, which sends EVALSHA and falls
    back to EVAL when the server has not cached the script yet.

    Args:
        name: Script name, one of ``SCRIPTS``
        conn: Redis client to run the script on
        keys: Key names passed as KEYS
        argv: Arguments passed as ARGV

    Returns:
        The integer returned by the script

    Raises:
        KeyError: If no script is registered under ``name``
    """
    script = conn.register_script(SCRIPTS[name])
    result = script(keys=list(keys), args=[str(arg) for arg in argv])
    return int(result) if result else 0

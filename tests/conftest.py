"""
Pytest configuration and shared fixtures.
"""

import json
import re
from collections.abc import Callable, Iterator
from typing import Any
from uuid import uuid4

import pytest

from lock_reaper.config import Settings
from lock_reaper.constants import DIGESTS, QUEUES, RETRY, SCHEDULE, queue_key
from lock_reaper.types.reaper import ReaperConfig


class FakePipeline:
    """Buffers commands and runs them against the fake on execute()."""

    def __init__(self, client: "FakeRedis"):
        self._client = client
        self._commands: list[tuple[str, tuple[Any, ...]]] = []

    def delete(self, *keys: str) -> "FakePipeline":
        self._commands.append(("delete", keys))
        return self

    def zrem(self, key: str, *members: str) -> "FakePipeline":
        self._commands.append(("zrem", (key, *members)))
        return self

    def execute(self) -> list[Any]:
        self._client.pipelines_executed += 1
        results = [getattr(self._client, name)(*args) for name, args in self._commands]
        self._commands.clear()
        return results


class FakeRedis:
    """
    In-memory stand-in for the subset of the Redis client the reaper uses.

    Index handling follows Redis, including negative indices. ``on_lrange``
    runs after every LRANGE to simulate workers draining a queue mid-scan.
    """

    def __init__(self):
        self.sorted_sets: dict[str, dict[str, float]] = {}
        self.sets: dict[str, set[str]] = {}
        self.lists: dict[str, list[str]] = {}
        self.strings: dict[str, str] = {}
        self.on_lrange: Callable[["FakeRedis", str], None] | None = None
        self.calls: list[str] = []
        self.pipelines_executed = 0

    # Sorted sets

    def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.sorted_sets.setdefault(key, {})
        added = len(set(mapping) - set(zset))
        zset.update(mapping)
        return added

    def zcard(self, key: str) -> int:
        return len(self.sorted_sets.get(key, {}))

    def zrevrange(self, key: str, start: int, end: int) -> list[str]:
        self.calls.append("zrevrange")
        members = sorted(
            self.sorted_sets.get(key, {}).items(),
            key=lambda item: (item[1], item[0]),
            reverse=True,
        )
        return _redis_slice([member for member, _ in members], start, end)

    def zscan_iter(
        self,
        key: str,
        match: str | None = None,
        count: int | None = None,
    ) -> Iterator[tuple[str, float]]:
        self.calls.append("zscan")
        for member, score in list(self.sorted_sets.get(key, {}).items()):
            if match is None or _glob_match(match, member):
                yield member, score

    def zrem(self, key: str, *members: str) -> int:
        zset = self.sorted_sets.get(key, {})
        removed = 0
        for member in members:
            if zset.pop(member, None) is not None:
                removed += 1
        return removed

    # Sets

    def sadd(self, key: str, *members: str) -> int:
        existing = self.sets.setdefault(key, set())
        added = len(set(members) - existing)
        existing.update(members)
        return added

    def sscan_iter(
        self,
        key: str,
        match: str | None = None,
        count: int | None = None,
    ) -> Iterator[str]:
        for member in sorted(self.sets.get(key, set())):
            if match is None or _glob_match(match, member):
                yield member

    # Lists

    def rpush(self, key: str, *values: str) -> int:
        items = self.lists.setdefault(key, [])
        items.extend(values)
        return len(items)

    def lpop(self, key: str, count: int = 1) -> list[str]:
        items = self.lists.get(key, [])
        popped, self.lists[key] = items[:count], items[count:]
        return popped

    def llen(self, key: str) -> int:
        self.calls.append("llen")
        return len(self.lists.get(key, []))

    def lrange(self, key: str, start: int, end: int) -> list[str]:
        self.calls.append("lrange")
        window = _redis_slice(self.lists.get(key, []), start, end)
        if self.on_lrange is not None:
            self.on_lrange(self, key)
        return window

    # Keys

    def set(self, key: str, value: str) -> bool:
        self.strings[key] = value
        return True

    def exists(self, *keys: str) -> int:
        return sum(
            1
            for key in keys
            if key in self.strings
            or key in self.lists
            or key in self.sets
            or key in self.sorted_sets
        )

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            for store in (self.strings, self.lists, self.sets, self.sorted_sets):
                if key in store:
                    del store[key]
                    removed += 1
        return removed

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def register_script(self, script: str):
        raise NotImplementedError("Lua scripts need a real Redis server")


def _glob_match(pattern: str, value: str) -> bool:
    """Match like Redis MATCH, where a backslash escapes the next character."""
    regex = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            index += 1
            regex.append(re.escape(pattern[index]))
        elif char == "*":
            regex.append(".*")
        elif char == "?":
            regex.append(".")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                regex.append(re.escape(char))
            else:
                body = pattern[index + 1:end]
                if body.startswith("^"):
                    body = "^" + re.escape(body[1:])
                else:
                    body = re.escape(body)
                regex.append(f"[{body}]")
                index = end
        else:
            regex.append(re.escape(char))
        index += 1
    return re.fullmatch("".join(regex), value, re.DOTALL) is not None


def _redis_slice(items: list[str], start: int, end: int) -> list[str]:
    """Apply LRANGE/ZRANGE index rules to a Python list."""
    size = len(items)
    if start < 0:
        start = max(size + start, 0)
    if end < 0:
        end = size + end
    if start >= size or start > end:
        return []
    return items[start:min(end, size - 1) + 1]


def make_job(digest: str, queue: str = "default", **extra: Any) -> str:
    """Serialize a job payload that carries a lock digest."""
    return json.dumps(
        {
            "class": "UniqueWorker",
            "queue": queue,
            "args": [uuid4().hex],
            "jid": uuid4().hex,
            "lock_digest": digest,
            **extra,
        }
    )


class Seeder:
    """Writes locks and jobs the way the job framework lays them out."""

    def __init__(self, conn: Any):
        self.conn = conn
        self._score = 1_700_000_000.0

    def lock(self, digest: str | None = None) -> str:
        """Register a digest with its lock keys, newer than all before it."""
        digest = digest or f"uniquejobs:{uuid4().hex}"
        self._score += 1
        self.conn.zadd(DIGESTS, {digest: self._score})
        self.conn.set(digest, "jid")
        self.conn.set(f"{digest}:LOCKED", "jid")
        self.conn.set(f"{digest}:INFO", "{}")
        return digest

    def scheduled(self, digest: str) -> None:
        self.conn.zadd(SCHEDULE, {make_job(digest): self._score + 3600})

    def retried(self, digest: str) -> None:
        self.conn.zadd(RETRY, {make_job(digest): self._score + 60})

    def enqueued(self, digest: str, queue: str = "default") -> None:
        self.conn.sadd(QUEUES, queue)
        self.conn.rpush(queue_key(queue), make_job(digest, queue))

    def filler(self, queue: str, count: int) -> list[str]:
        """Enqueue jobs that reference no registered digest."""
        self.conn.sadd(QUEUES, queue)
        jobs = [make_job(f"uniquejobs:filler-{uuid4().hex}", queue) for _ in range(count)]
        if jobs:
            self.conn.rpush(queue_key(queue), *jobs)
        return jobs


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Create an empty in-memory Redis."""
    return FakeRedis()


@pytest.fixture
def seed(fake_redis: FakeRedis) -> Seeder:
    """Create a seeder writing to the in-memory Redis."""
    return Seeder(fake_redis)


@pytest.fixture
def paginated_config() -> ReaperConfig:
    """Reaper configuration for the client-side strategy."""
    return ReaperConfig(strategy="paginated", batch_size=1000, scan_count=10)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        redis_url="redis://localhost:6379/15",
        reaper_strategy="paginated",
        reaper_count=25,
        reaper_scan_count=10,
        reaper_interval_seconds=1,
        log_level="DEBUG",
        log_format="console",
        prometheus_port=None,
    )


"""
Orphaned lock reaper.

Unique-job locks are normally released when their job finishes. When a job
disappears without releasing its lock (a crashed worker, a job deleted by
hand), the digest stays registered and blocks every future job with the same
unique key. The reaper finds digests that no scheduled, retried or queued job
references and deletes them, a bounded batch per pass.
"""

import asyncio
import logging
import signal
import time

from redis import Redis

from lock_reaper.config import get_settings
from lock_reaper.constants import (
    DIGESTS,
    LOCK_KEY_SUFFIXES,
    OUTCOME_ERROR,
    OUTCOME_SUCCESS,
    QUEUE_PAGE_SIZE,
    QUEUE_PREFIX,
    QUEUES,
    RETRY,
    SCHEDULE,
    SCRIPT_REAP_ORPHANS,
    SPAN_BATCH_DELETE,
    SPAN_REAPER_PASS,
    ReaperStrategy,
)
from lock_reaper.observability.logging import reaper_context, setup_logging
from lock_reaper.observability.metrics import get_metrics, start_metrics_server
from lock_reaper.observability.tracing import create_span
from lock_reaper.reaper.batch_delete import BatchDelete
from lock_reaper.reaper.digests import LockRegistry
from lock_reaper.reaper.oracle import LiveJobOracle
from lock_reaper.store.connection import close_redis, redis_connection
from lock_reaper.store.scripts import call_script
from lock_reaper.types.reaper import ReaperConfig

logger = logging.getLogger(__name__)


class Reaper:
    """
    Deletes orphaned digests with the configured strategy.

    - atomic: one Lua script checks and deletes inside Redis. Fast and
      race-free, but Redis serves nothing else while it runs.
    - paginated: orphans are found client-side and deleted in batches. Much
      slower, never blocks Redis, and accepts that a digest may change state
      between the check and the delete.
    """

    def __init__(self, conn: Redis, config: ReaperConfig | None = None):
        """
        Initialize the reaper.

        Args:
            conn: Redis client used for the whole pass.
            config: Pass configuration. Read from settings when omitted.
        """
        self.conn = conn
        self.config = config or ReaperConfig.from_settings(get_settings())
        self.registry = LockRegistry(conn)
        self.oracle = LiveJobOracle(conn, scan_count=self.config.scan_count)
        self._metrics = get_metrics()

    @property
    def batch_size(self) -> int:
        """The number of locks to reap per pass."""
        return self.config.batch_size

    def call(self) -> int | None:
        """
        Delete orphaned digests.

        Returns:
            Number of reaped locks, or None when the strategy is invalid.
        """
        strategy = self.config.strategy
        executors = {
            ReaperStrategy.ATOMIC: self.execute_atomic_reaper,
            ReaperStrategy.PAGINATED: self.execute_paginated_reaper,
        }
        executor = executors.get(strategy)

        if executor is None:
            logger.critical(
                f"{strategy!r} is not a valid reaper strategy, "
                f"expected one of {', '.join(executors)}",
                extra={"strategy": strategy},
            )
            self._metrics.record_invalid_config(str(strategy))
            return None

        started = time.perf_counter()
        with (
            reaper_context(strategy=strategy, batch_size=self.batch_size),
            create_span(SPAN_REAPER_PASS, strategy=strategy, batch_size=self.batch_size),
        ):
            try:
                reaped = executor()
            except Exception:
                self._metrics.record_pass(
                    strategy, OUTCOME_ERROR, time.perf_counter() - started
                )
                raise

        self._metrics.record_pass(
            strategy, OUTCOME_SUCCESS, time.perf_counter() - started, reaped
        )
        if reaped > 0:
            logger.info(
                f"Reaped {reaped} orphaned locks",
                extra={"strategy": strategy, "reaped": reaped},
            )
        return reaped

    def execute_atomic_reaper(self) -> int:
        """
        Reap inside Redis with a single Lua script.

        Returns:
            Number of deleted locks.
        """
        return call_script(
            SCRIPT_REAP_ORPHANS,
            self.conn,
            keys=[DIGESTS, SCHEDULE, RETRY],
            argv=[
                self.batch_size,
                QUEUES,
                QUEUE_PREFIX,
                QUEUE_PAGE_SIZE,
                self.config.scan_count,
                *LOCK_KEY_SUFFIXES,
            ],
        )

    def execute_paginated_reaper(self) -> int:
        """
        Find orphans client-side, then delete them in batches.

        Returns:
            Number of deleted locks.
        """
        orphans = self.orphans()
        self._metrics.record_orphans_found(len(orphans))

        with create_span(SPAN_BATCH_DELETE, orphans=len(orphans)):
            return BatchDelete.call(orphans, self.conn)

    def orphans(self) -> list[str]:
        """
        Find orphaned digests, most recently registered first.

        Walks as much of the registry as it takes to find a full batch.

        Returns:
            At most ``batch_size`` digests without a live job.
        """
        result: list[str] = []
        seen: set[str] = set()

        for digest in self.registry.digests():
            if digest in seen:
                continue
            seen.add(digest)

            if self.oracle.belongs_to_job(digest):
                continue

            result.append(digest)
            if len(result) >= self.batch_size:
                break

        return result


def reap(conn: Redis | None = None, config: ReaperConfig | None = None) -> int | None:
    """
    Run one reaper pass.

    Args:
        conn: Redis client. A pooled connection is held for the pass when omitted.
        config: Pass configuration. Read from settings when omitted.

    Returns:
        Number of reaped locks, or None when the strategy is invalid.
    """
    if conn is not None:
        return Reaper(conn, config).call()

    with redis_connection() as rcon:
        return Reaper(rcon, config).call()


class ReaperService:
    """
    Periodic runner for the orphan reaper.

    Runs a pass every interval in a worker thread so the blocking Redis calls
    stay off the event loop. A failed pass is logged and retried on the next
    tick.
    """

    def __init__(self, interval_seconds: int | None = None):
        """
        Initialize the service.

        Args:
            interval_seconds: Seconds between reaper passes.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self._running = False
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(f"Reaper starting with interval {self.interval}s")
        self._running = True
        self._stopped.clear()

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._running = False
        self._stopped.set()

    async def run_once(self) -> int | None:
        """
        Run the reaper once (for testing or cron-style execution).

        Returns:
            Number of reaped locks, or None when the strategy is invalid.
        """
        return await asyncio.to_thread(reap)


async def run_async() -> None:
    """Run the reaper service asynchronously."""
    setup_logging()
    settings = get_settings()

    if settings.prometheus_port is not None:
        start_metrics_server(settings.prometheus_port)

    service = ReaperService()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(service.stop())
        )

    try:
        await service.start()
    finally:
        close_redis()


def run() -> None:
    """Run the reaper service."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

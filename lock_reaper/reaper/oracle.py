"""
Live-job lookup for lock digests.

A digest is live while a job that references it is scheduled, waiting for a
retry, or sitting in a queue. Jobs are not deserialized: a job references a
digest when its serialized payload contains the digest as a substring.
"""

import re
from collections.abc import Iterator

from redis import Redis

from lock_reaper.constants import QUEUE_PAGE_SIZE, QUEUES, RETRY, SCHEDULE
from lock_reaper.reaper.queue_scanner import QueueScanner


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so the value matches literally."""
    return re.sub(r"([*?\[\]\\])", r"\\\1", value)


class LiveJobOracle:
    """
    Answers whether a digest still belongs to a pending job.

    Sources are checked cheapest first: the scheduled set, the retry set,
    then every queue. The first match wins.
    """

    def __init__(
        self,
        conn: Redis,
        scan_count: int = 100,
        page_size: int = QUEUE_PAGE_SIZE,
    ):
        """
        Initialize the oracle.

        Args:
            conn: Redis client.
            scan_count: COUNT hint for sorted set scans.
            page_size: Window size for queue scans.
        """
        self.conn = conn
        self.scan_count = scan_count
        self.page_size = page_size

    def belongs_to_job(self, digest: str) -> bool:
        """
        Check if the digest has a matching job.

        Args:
            digest: The digest to search for.

        Returns:
            True when any live-job source references the digest.
        """
        return self.scheduled(digest) or self.retried(digest) or self.enqueued(digest)

    def scheduled(self, digest: str) -> bool:
        """Check if a scheduled job references the digest."""
        return self.in_sorted_set(SCHEDULE, digest)

    def retried(self, digest: str) -> bool:
        """Check if a job waiting for retry references the digest."""
        return self.in_sorted_set(RETRY, digest)

    def enqueued(self, digest: str) -> bool:
        """
        Check if a job in any queue references the digest.

        Args:
            digest: The digest to search for.

        Returns:
            True as soon as one queue holds a matching job.
        """
        return any(
            QueueScanner(self.conn, queue, self.page_size).contains(digest)
            for queue in self.queues()
        )

    def queues(self) -> Iterator[str]:
        """Iterate the names of all known queues."""
        return self.conn.sscan_iter(QUEUES)

    def in_sorted_set(self, key: str, digest: str) -> bool:
        """
        Scan a sorted set for a member containing the digest.

        Members changed during the scan may be missed.

        Args:
            key: The sorted set to scan.
            digest: The digest to search for.

        Returns:
            True on the first matching member.
        """
        matches = self.conn.zscan_iter(
            key,
            match=f"*{escape_glob(digest)}*",
            count=self.scan_count,
        )
        return next(matches, None) is not None

"""
Paginated scanning of a queue that workers are draining.

Workers pop jobs from the front of the list while the scan reads it, so a
fixed window would slide past entries that moved forward. Each window is
shifted back by the number of entries removed since the scan began, which
keeps it pointed at the same logical entries the queue held at the start.
"""

import logging
from collections.abc import Iterator

from redis import Redis

from lock_reaper.constants import QUEUE_PAGE_SIZE, queue_key

logger = logging.getLogger(__name__)


def exhausted(window: list[str], range_start: int, remaining: int) -> bool:
    """
    Check whether a scan has run past the end of the queue.

    Args:
        window: Entries returned for the last window.
        range_start: Adjusted start index of the last window.
        remaining: Queue length after the window was fetched.

    Returns:
        True when the window came back empty and starts at or past the end.
    """
    return not window and range_start >= remaining


class QueueScanner:
    """
    Walks one queue in fixed-size windows, correcting for front removal.

    Entries pushed behind the scan position are not guaranteed to be seen,
    and an entry popped before its window is read is skipped.
    """

    def __init__(self, conn: Redis, queue: str, page_size: int = QUEUE_PAGE_SIZE):
        """
        Initialize the scanner.

        Args:
            conn: Redis client.
            queue: Queue name, without the key prefix.
            page_size: Entries fetched per window.
        """
        self.conn = conn
        self.queue = queue
        self.key = queue_key(queue)
        self.page_size = page_size

    def entries(self) -> Iterator[str]:
        """
        Iterate the serialized jobs of the queue.

        Yields:
            str: A serialized job payload.
        """
        initial_size = self.conn.llen(self.key)
        deleted_size = 0
        page = 0

        while True:
            range_start = page * self.page_size - deleted_size
            range_end = range_start + self.page_size - 1
            page += 1

            # A negative end means the whole window was popped already
            if range_end < 0:
                window: list[str] = []
            else:
                window = self.conn.lrange(self.key, max(range_start, 0), range_end)

            yield from window

            remaining = self.conn.llen(self.key)
            deleted_size = initial_size - remaining

            if exhausted(window, range_start, remaining):
                logger.debug(
                    "Queue scan finished",
                    extra={"queue": self.queue, "pages": page},
                )
                return

    def contains(self, digest: str) -> bool:
        """
        Check whether any job in the queue references a digest.

        Args:
            digest: The digest to search for.

        Returns:
            True as soon as a serialized job contains the digest.
        """
        return any(digest in entry for entry in self.entries())

"""
Read access to the lock registry.
"""

from collections.abc import Iterator

from redis import Redis

from lock_reaper.constants import DIGESTS, REGISTRY_PAGE_SIZE
from lock_reaper.reaper.batch_delete import BatchDelete


class LockRegistry:
    """
    View over the sorted set of registered lock digests.

    Members are digests, scores are registration timestamps.
    """

    def __init__(self, conn: Redis, key: str = DIGESTS):
        """
        Initialize the registry view.

        Args:
            conn: Redis client.
            key: Sorted set holding the digests.
        """
        self.conn = conn
        self.key = key

    def digests(self, page_size: int = REGISTRY_PAGE_SIZE) -> Iterator[str]:
        """
        Iterate all digests, most recently registered first.

        The registry is read one page at a time. Digests registered during
        the walk shift later pages, so a digest may be yielded twice.

        Args:
            page_size: Digests fetched per round trip.

        Yields:
            str: A digest.
        """
        start = 0
        while True:
            page = self.conn.zrevrange(self.key, start, start + page_size - 1)
            yield from page
            if len(page) < page_size:
                return
            start += page_size

    def count(self) -> int:
        """Number of registered digests."""
        return self.conn.zcard(self.key)

    def entries(self, pattern: str = "*", count: int = 1000) -> dict[str, float]:
        """
        Scan the registry for digests matching a glob pattern.

        Args:
            pattern: Redis glob pattern.
            count: COUNT hint per scan round trip.

        Returns:
            Mapping of digest to registration score.
        """
        return dict(self.conn.zscan_iter(self.key, match=pattern, count=count))

    def clear(self, pattern: str = "*", count: int = 1000) -> int:
        """
        Delete every digest matching a pattern together with its lock keys.

        Args:
            pattern: Redis glob pattern.
            count: COUNT hint per scan round trip.

        Returns:
            Number of digests removed.
        """
        return BatchDelete.call(list(self.entries(pattern, count)), self.conn)

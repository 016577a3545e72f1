"""
Batch deletion of lock digests.
"""

import logging
from collections.abc import Iterator, Sequence

from redis import Redis

from lock_reaper.constants import DELETE_BATCH_SIZE, DIGESTS, lock_keys

logger = logging.getLogger(__name__)


class BatchDelete:
    """
    Deletes digests from the lock registry along with their lock keys.

    Digests are processed in chunks, one pipeline round trip per chunk.
    Deleting a digest that is already gone is a no-op.
    """

    def __init__(
        self,
        digests: Sequence[str],
        conn: Redis,
        batch_size: int = DELETE_BATCH_SIZE,
    ):
        """
        Initialize the batch delete.

        Args:
            digests: Digests to delete.
            conn: Redis client.
            batch_size: Digests per pipeline round trip.
        """
        self.digests = list(digests)
        self.conn = conn
        self.batch_size = batch_size

    @classmethod
    def call(cls, digests: Sequence[str], conn: Redis) -> int:
        """
        Delete the given digests.

        Args:
            digests: Digests to delete.
            conn: Redis client.

        Returns:
            Number of digests removed from the registry.
        """
        return cls(digests, conn).execute()

    def execute(self) -> int:
        """
        Run the deletion.

        Returns:
            Number of digests removed from the registry.
        """
        if not self.digests:
            return 0

        removed = 0
        for chunk in self._chunks():
            pipe = self.conn.pipeline(transaction=False)
            for digest in chunk:
                pipe.delete(*lock_keys(digest))
            pipe.zrem(DIGESTS, *chunk)
            removed += pipe.execute()[-1]

        logger.debug(
            "Deleted digests",
            extra={"requested": len(self.digests), "removed": removed},
        )
        return removed

    def _chunks(self) -> Iterator[list[str]]:
        for start in range(0, len(self.digests), self.batch_size):
            yield self.digests[start:start + self.batch_size]

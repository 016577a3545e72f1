"""
Orphaned Lock Reaper

Reclaims unique-job lock digests that are still registered in Redis after the
job that created them is no longer scheduled, retried, or enqueued.
"""

from lock_reaper.reaper import Reaper, reap

__version__ = "1.0.0"

__all__ = ["Reaper", "reap"]

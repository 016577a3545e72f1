"""
Reaper module.
Contains the orphaned lock reaper and its building blocks.
"""

from lock_reaper.reaper.batch_delete import BatchDelete
from lock_reaper.reaper.digests import LockRegistry
from lock_reaper.reaper.main import Reaper, ReaperService, reap, run
from lock_reaper.reaper.oracle import LiveJobOracle
from lock_reaper.reaper.queue_scanner import QueueScanner

__all__ = [
    "BatchDelete",
    "LiveJobOracle",
    "LockRegistry",
    "QueueScanner",
    "Reaper",
    "ReaperService",
    "reap",
    "run",
]

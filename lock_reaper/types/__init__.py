"""
Type definitions for the lock reaper.
"""

from lock_reaper.types.reaper import ReaperConfig

__all__ = [
    "ReaperConfig",
]

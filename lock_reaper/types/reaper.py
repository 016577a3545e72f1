"""
Reaper-related type definitions.
"""

from dataclasses import dataclass

from lock_reaper.config import Settings
from lock_reaper.constants import DEFAULT_REAPER_COUNT, DEFAULT_REAPER_STRATEGY


@dataclass(frozen=True)
class ReaperConfig:
    """
    Configuration for a single reaper pass.

    The strategy is kept as a plain string so that an unknown value reaches
    the reaper, which reports it instead of failing at load time.
    """

    strategy: str = DEFAULT_REAPER_STRATEGY
    batch_size: int = DEFAULT_REAPER_COUNT
    scan_count: int = 100

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.scan_count <= 0:
            raise ValueError(f"scan_count must be positive, got {self.scan_count}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReaperConfig":
        """
        Build a reaper configuration from application settings.

        Args:
            settings: The application settings.

        Returns:
            ReaperConfig: The configuration for one pass.
        """
        return cls(
            strategy=settings.reaper_strategy,
            batch_size=settings.reaper_count,
            scan_count=settings.reaper_scan_count,
        )

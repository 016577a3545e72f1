"""
Application constants.
Centralized location for Redis key names, reaper defaults and metric names.
"""

from enum import StrEnum


class ReaperStrategy(StrEnum):
    """
    Orphan reclamation strategies.

    - ATOMIC: one server-side Lua script checks and deletes in a single step.
      Blocks Redis for the duration of the pass.
    - PAGINATED: orphans are found client-side with windowed scans and then
      deleted in batches. Never blocks Redis, tolerates concurrent mutation.
    """

    ATOMIC = "atomic"
    PAGINATED = "paginated"


# Redis keys shared with the job framework
DIGESTS = "uniquejobs:digests"
SCHEDULE = "schedule"
RETRY = "retry"
QUEUES = "queues"
QUEUE_PREFIX = "queue:"

# Keys stored next to each digest, as "<digest>:<suffix>"
LOCK_SUFFIXES: tuple[str, ...] = ("QUEUED", "PRIMED", "LOCKED", "INFO")
RUN_SUFFIX = "RUN"
LOCK_KEY_SUFFIXES: tuple[str, ...] = (
    *LOCK_SUFFIXES,
    RUN_SUFFIX,
    *(f"{RUN_SUFFIX}:{suffix}" for suffix in LOCK_SUFFIXES),
)

# Reaper defaults
DEFAULT_REAPER_STRATEGY = ReaperStrategy.ATOMIC
DEFAULT_REAPER_COUNT = 1000
QUEUE_PAGE_SIZE = 50
REGISTRY_PAGE_SIZE = 1000
DELETE_BATCH_SIZE = 100

# Lua scripts
SCRIPT_REAP_ORPHANS = "reap_orphans"

# Metrics names
METRIC_REAPER_PASSES = "reaper_passes_total"
METRIC_LOCKS_REAPED = "locks_reaped_total"
METRIC_ORPHANS_FOUND = "orphans_found_total"
METRIC_REAPER_DURATION = "reaper_pass_duration_seconds"

# Pass outcomes
OUTCOME_SUCCESS = "success"
OUTCOME_ERROR = "error"
OUTCOME_INVALID_CONFIG = "invalid_config"

# Trace span names
SPAN_REAPER_PASS = "reaper.pass"
SPAN_BATCH_DELETE = "reaper.batch_delete"


def queue_key(queue: str) -> str:
    """Redis list key holding the jobs of a queue."""
    return f"{QUEUE_PREFIX}{queue}"


def lock_keys(digest: str) -> list[str]:
    """All keys holding lock state for a digest, the digest key included."""
    return [digest, *(f"{digest}:{suffix}" for suffix in LOCK_KEY_SUFFIXES)]

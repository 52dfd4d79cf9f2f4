from .calculator import (
    MANUAL_THRESHOLD,
    STATUS_PROGRESS,
    ProgressCounts,
    ProgressInfo,
    ProgressSource,
    derive,
    is_manual,
    progress_info,
)
from .notifications import ProgressChannel
from .sync import ProgressSyncService, ProjectProgressStats

__all__ = [
    "MANUAL_THRESHOLD",
    "STATUS_PROGRESS",
    "ProgressCounts",
    "ProgressInfo",
    "ProgressSource",
    "derive",
    "is_manual",
    "progress_info",
    "ProgressChannel",
    "ProgressSyncService",
    "ProjectProgressStats",
]

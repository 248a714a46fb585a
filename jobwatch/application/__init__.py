"""Application services."""

from .tracker import JobTracker
from .watches import WatchNotFoundError, WatchService, get_watch_service, reset_watch_state

__all__ = [
    "JobTracker",
    "WatchNotFoundError",
    "WatchService",
    "get_watch_service",
    "reset_watch_state",
]

"""Infrastructure layer exports."""

from .adapters import PayloadAdapter
from .job_api import JobApiClient, configure_job_api, get_job_api
from .session import (
    AnonymousSessionProvider,
    SessionProvider,
    StaticSessionProvider,
    session_from_header,
)
from .watches import InMemoryWatchRepository, WatchRepository

__all__ = [
    "AnonymousSessionProvider",
    "InMemoryWatchRepository",
    "JobApiClient",
    "PayloadAdapter",
    "SessionProvider",
    "StaticSessionProvider",
    "WatchRepository",
    "configure_job_api",
    "get_job_api",
    "session_from_header",
]

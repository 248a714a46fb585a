"""Domain entities for asynchronous media jobs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class JobStatus(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        # completed and failed share a rank; neither can follow the other
        return _RANKS[self]


_RANKS: dict[JobStatus, int] = {
    JobStatus.IDLE: 0,
    JobStatus.QUEUED: 1,
    JobStatus.PROCESSING: 2,
    JobStatus.COMPLETED: 3,
    JobStatus.FAILED: 3,
}

STATUS_ALIASES: dict[str, JobStatus] = {
    "queued": JobStatus.QUEUED,
    "pending": JobStatus.QUEUED,
    "waiting": JobStatus.QUEUED,
    "processing": JobStatus.PROCESSING,
    "generating": JobStatus.PROCESSING,
    "rendering": JobStatus.PROCESSING,
    "rendering_chapters": JobStatus.PROCESSING,
    "stitching": JobStatus.PROCESSING,
    "running": JobStatus.PROCESSING,
    "in_progress": JobStatus.PROCESSING,
    "completed": JobStatus.COMPLETED,
    "complete": JobStatus.COMPLETED,
    "done": JobStatus.COMPLETED,
    "ready": JobStatus.COMPLETED,
    "succeeded": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "errored": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
}


def canonical_status(label: Any, extra_aliases: Mapping[str, str] | None = None) -> JobStatus | None:
    """Collapse a backend status label into :class:`JobStatus`.

    Returns ``None`` for labels that are not recognised so callers can decide
    how to treat them.
    """

    if label is None:
        return None
    key = str(label).strip().lower()
    if not key:
        return None
    if extra_aliases and key in extra_aliases:
        return JobStatus(extra_aliases[key])
    return STATUS_ALIASES.get(key)


@dataclass(slots=True)
class SubmitOutcome:
    """Result of a successful submission."""

    cached: bool = False
    job_id: str | None = None
    artifact_url: str | None = None
    status: JobStatus = JobStatus.QUEUED
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        return self.status is JobStatus.COMPLETED and bool(self.artifact_url)


@dataclass(slots=True)
class JobSnapshot:
    """One normalised status reading from the backend."""

    status: JobStatus
    job_id: str | None = None
    artifact_url: str | None = None
    error: str | None = None
    progress: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    awaiting_artifact: bool = False


@dataclass(slots=True)
class AsyncJob:
    """Client-side mirror of a backend job record."""

    feature: str
    job_id: str | None = None
    status: JobStatus = JobStatus.IDLE
    params: dict[str, Any] = field(default_factory=dict)
    artifact_url: str | None = None
    error: str | None = None
    progress: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    updated_at: str | None = None

    def advance(self, status: JobStatus) -> bool:
        """Move forward to ``status``; returns ``False`` if the move is ignored."""

        if self.status.is_terminal:
            return False
        if status.rank < self.status.rank:
            return False
        changed = status is not self.status
        self.status = status
        self.touch()
        return changed

    def reset(self, params: Mapping[str, Any]) -> None:
        self.job_id = None
        self.status = JobStatus.IDLE
        self.params = dict(params)
        self.artifact_url = None
        self.error = None
        self.progress = None
        self.metadata = {}
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc).isoformat()

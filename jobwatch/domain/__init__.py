"""Domain layer definitions."""

from .jobs import AsyncJob, JobSnapshot, JobStatus, SubmitOutcome, canonical_status

__all__ = [
    "AsyncJob",
    "JobSnapshot",
    "JobStatus",
    "SubmitOutcome",
    "canonical_status",
]

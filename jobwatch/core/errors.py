from __future__ import annotations


class JobWatchError(RuntimeError):
    """Base class for errors raised while tracking a job."""


class InputValidationError(JobWatchError):
    """Raised when job parameters fail client-side validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class UnauthenticatedError(JobWatchError):
    """Raised when no session credential is available or the backend rejects it."""


class EntitlementDeniedError(JobWatchError):
    """Raised when the caller's plan or credits do not allow the request."""

    def __init__(self, message: str, *, reason: str = "upgrade_required") -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


class CapacityExceededError(JobWatchError):
    """Raised when the backend is rate limited or its queue is full."""


class SubmissionError(JobWatchError):
    """Raised when a job could not be started for any other reason."""


class StatusFetchError(JobWatchError):
    """Raised when a single status poll fails."""


class RetryLimitReachedError(JobWatchError):
    """Raised when a retry is requested past the feature's cap."""


class UnknownFeatureError(JobWatchError):
    """Raised when a feature name is not configured."""


class FeatureConfigError(JobWatchError):
    """Raised when the feature configuration file is invalid."""

"""State machine for one watched job.

    idle --submit--> queued --poll--> processing --poll--> completed
                        |                  |
                        +------poll--------+------poll---> failed --retry (bounded)--> queued

The backend owns the job; the tracker only mirrors it. Transitions move
forward, a terminal state is left only through a new submission, and a poll
that fails on the wire leaves the mirror untouched.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping, Protocol

from jobwatch.core.errors import (
    CapacityExceededError,
    EntitlementDeniedError,
    InputValidationError,
    RetryLimitReachedError,
    SubmissionError,
    UnauthenticatedError,
)
from jobwatch.core.logging import get_logger
from jobwatch.core.polling import poll_until_terminal
from jobwatch.core.progress import ProgressPresenter
from jobwatch.core.render import (
    LOGIN_MESSAGE,
    MAX_RETRIES_MESSAGE,
    MISSING_ARTIFACT_MESSAGE,
    Notice,
    render_view,
)
from jobwatch.core.schema import FeatureConfig, JobView
from jobwatch.core.validation import validate_params
from jobwatch.domain import AsyncJob, JobSnapshot, JobStatus, SubmitOutcome
from jobwatch.infrastructure.session import SessionProvider

logger = get_logger(__name__)


class JobApi(Protocol):
    async def submit(self, feature: FeatureConfig, params: Mapping[str, Any], credential: str | None) -> SubmitOutcome: ...

    async def fetch_status(self, feature: FeatureConfig, job_id: str, credential: str | None) -> JobSnapshot: ...


class JobTracker:
    """Submitter, poller, progress presenter and result renderer for one job."""

    def __init__(
        self,
        feature: FeatureConfig,
        api: JobApi,
        session: SessionProvider,
        *,
        watch_id: str | None = None,
        upgrade_url: str | None = None,
        listener: Callable[[JobView], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._feature = feature
        self._api = api
        self._session = session
        self._watch_id = watch_id
        self._upgrade_url = upgrade_url
        self._listener = listener
        self._sleep = sleep

        self.job = AsyncJob(feature=feature.name)
        self._presenter = ProgressPresenter(feature)
        self._notice: Notice | None = None
        self._retries_used = 0
        self._missing_artifact_polls = 0
        self._closed = False
        self._log = logger.bind(feature=feature.name, watch_id=watch_id)

    # ------------------------------------------------------------------
    # properties
    # ------------------------------------------------------------------
    @property
    def feature(self) -> FeatureConfig:
        return self._feature

    @property
    def watch_id(self) -> str | None:
        return self._watch_id

    @property
    def retries_used(self) -> int:
        return self._retries_used

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def needs_polling(self) -> bool:
        return (
            not self._closed
            and self._notice is None
            and self.job.job_id is not None
            and self.job.status in (JobStatus.QUEUED, JobStatus.PROCESSING)
        )

    # ------------------------------------------------------------------
    # submission
    # ------------------------------------------------------------------
    async def submit(self, params: Mapping[str, Any] | None) -> JobView:
        """Start a new job from user input."""

        if self._notice is None and self.job.status in (JobStatus.QUEUED, JobStatus.PROCESSING):
            self._log.info("submit_ignored_job_running", job_id=self.job.job_id)
            return self.view()
        self._retries_used = 0
        return await self._start(params)

    async def retry(self) -> JobView:
        """Resubmit a failed job with its original parameters."""

        if self.job.status is not JobStatus.FAILED:
            return self.view()
        if self._retries_used >= self._feature.max_retries:
            raise RetryLimitReachedError(MAX_RETRIES_MESSAGE)
        self._retries_used += 1
        self._log.info("job_retry", attempt=self._retries_used, limit=self._feature.max_retries)
        return await self._start(self.job.params)

    async def _start(self, params: Mapping[str, Any] | None) -> JobView:
        try:
            payload = validate_params(self._feature, params)
        except InputValidationError as exc:
            self._notice = Notice("validation_error", exc.message)
            return self.view()

        credential = self._session.get_credential()
        if credential is None:
            self._notice = Notice("login_required", LOGIN_MESSAGE)
            return self.view()

        self._notice = None
        self._missing_artifact_polls = 0
        self.job.reset(payload)
        self._presenter.reset()

        try:
            outcome = await self._api.submit(self._feature, payload, credential)
        except UnauthenticatedError:
            self._notice = Notice("login_required", LOGIN_MESSAGE)
        except EntitlementDeniedError as exc:
            self._log.info("job_entitlement_denied", reason=exc.reason)
            self._notice = Notice("upgrade_required", exc.message, reason=exc.reason)
        except CapacityExceededError as exc:
            self._log.info("job_capacity_exceeded")
            self._notice = Notice("try_later", str(exc))
        except SubmissionError as exc:
            self._log.warning("job_submit_failed", error=str(exc))
            self.job.error = str(exc)
            self.job.advance(JobStatus.FAILED)
        else:
            self._apply_outcome(outcome)
        return self.view()

    def _apply_outcome(self, outcome: SubmitOutcome) -> None:
        self.job.job_id = outcome.job_id
        self.job.metadata.update(outcome.metadata)
        if outcome.status is JobStatus.COMPLETED:
            self.job.artifact_url = outcome.artifact_url
        elif outcome.status is JobStatus.FAILED:
            self.job.error = outcome.error
        self.job.advance(outcome.status)
        if self.job.status.is_terminal:
            self._presenter.tick(self.job.status)
        self._log = self._log.bind(job_id=outcome.job_id)

    def attach(self, job_id: str) -> JobView:
        """Mirror a job that was started elsewhere."""

        job_id = str(job_id or "").strip()
        if not job_id:
            self._notice = Notice("validation_error", "A job id is required")
            return self.view()
        if self._session.get_credential() is None:
            self._notice = Notice("login_required", LOGIN_MESSAGE)
            return self.view()

        self._notice = None
        self._retries_used = 0
        self._missing_artifact_polls = 0
        self.job.reset({})
        self._presenter.reset()
        self.job.job_id = job_id
        self.job.advance(JobStatus.QUEUED)
        self._log = self._log.bind(job_id=job_id)
        self._log.info("job_attached")
        return self.view()

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------
    def apply(self, snapshot: JobSnapshot) -> None:
        """Fold one status reading into the mirror."""

        if self.job.status.is_terminal:
            return
        if snapshot.awaiting_artifact:
            self._missing_artifact_polls += 1
            if self._missing_artifact_polls >= self._feature.artifact_grace_polls:
                self._log.warning("job_artifact_missing", polls=self._missing_artifact_polls)
                snapshot = replace(snapshot, status=JobStatus.FAILED, error=MISSING_ARTIFACT_MESSAGE)
        else:
            self._missing_artifact_polls = 0

        if snapshot.status is JobStatus.COMPLETED:
            self.job.artifact_url = snapshot.artifact_url
        elif snapshot.status is JobStatus.FAILED:
            self.job.error = snapshot.error
        if snapshot.progress is not None:
            self.job.progress = snapshot.progress
        self.job.metadata.update(snapshot.metadata)

        changed = self.job.advance(snapshot.status)
        self._presenter.tick(self.job.status, snapshot.progress)
        if changed and self.job.status.is_terminal:
            self._log.info("job_finished", status=self.job.status.value, error=self.job.error)
        if self._listener is not None:
            self._listener(self.view())

    async def _fetch(self) -> JobSnapshot:
        credential = self._session.get_credential()
        return await self._api.fetch_status(self._feature, str(self.job.job_id), credential)

    async def watch(self) -> JobView:
        """Poll until the job is terminal or the watch is closed."""

        if not self.needs_polling:
            return self.view()
        try:
            await poll_until_terminal(
                self._fetch,
                lambda _: self.job.status.is_terminal,
                self.apply,
                self._feature.poll_interval,
                backoff=self._feature.backoff,
                max_interval=self._feature.max_poll_interval,
                should_continue=lambda: not self._closed,
                stop_on=(UnauthenticatedError,),
                sleep=self._sleep,
            )
        except UnauthenticatedError as exc:
            self._log.warning("polling_unauthenticated", error=str(exc))
            self._notice = Notice("login_required", LOGIN_MESSAGE)
            if self._listener is not None:
                self._listener(self.view())
        return self.view()

    def mark_failed(self, error: str) -> None:
        """Fail a job whose status can no longer be followed."""

        if self.job.status.is_terminal:
            return
        self.job.error = error
        self.job.advance(JobStatus.FAILED)
        self._presenter.tick(self.job.status)
        self._log.warning("job_abandoned", error=error)

    def close(self) -> None:
        self._closed = True

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------
    def view(self) -> JobView:
        return render_view(
            self._feature,
            self.job,
            self._presenter.reading(self.job.status),
            retries_used=self._retries_used,
            watch_id=self._watch_id,
            notice=self._notice,
            upgrade_url=self._upgrade_url,
        )

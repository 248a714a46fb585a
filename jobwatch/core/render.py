"""Build the view a page renders for one watched job."""
from __future__ import annotations

from dataclasses import dataclass

from jobwatch.core.progress import ProgressReading
from jobwatch.core.schema import FeatureConfig, JobView, ViewState
from jobwatch.domain import AsyncJob, JobStatus

MAX_RETRIES_MESSAGE = "Maximum retry attempts reached. Please contact support."
MISSING_ARTIFACT_MESSAGE = "The video finished but no download link was returned. Please try again."
LOGIN_MESSAGE = "Please sign in to continue."


@dataclass(slots=True)
class Notice:
    """A pre-submission outcome that replaces the job view (denials, bad input)."""

    state: ViewState
    message: str
    reason: str | None = None


def render_view(
    feature: FeatureConfig,
    job: AsyncJob,
    reading: ProgressReading,
    *,
    retries_used: int = 0,
    watch_id: str | None = None,
    notice: Notice | None = None,
    upgrade_url: str | None = None,
) -> JobView:
    retries_left = max(feature.max_retries - retries_used, 0)
    base = {
        "feature": feature.name,
        "status": job.status.value,
        "watch_id": watch_id,
        "job_id": job.job_id,
        "retries_used": retries_used,
        "retries_left": retries_left,
        "metadata": dict(job.metadata),
    }

    if notice is not None:
        return JobView(
            **base,
            state=notice.state,
            message=notice.message,
            reason=notice.reason,
            upgrade_url=upgrade_url if notice.state == "upgrade_required" else None,
        )

    if job.status is JobStatus.IDLE:
        return JobView(**base, state="idle")

    if job.status is JobStatus.COMPLETED:
        # artifact URL is handed through exactly as the backend sent it
        return JobView(
            **base,
            state="completed",
            percent=100,
            stage=reading.stage,
            artifact_url=job.artifact_url,
        )

    if job.status is JobStatus.FAILED:
        can_retry = retries_left > 0
        message = (job.error or feature.failure_message) if can_retry else MAX_RETRIES_MESSAGE
        return JobView(
            **base,
            state="failed",
            percent=reading.percent,
            stage=reading.stage,
            message=message,
            error=job.error,
            can_retry=can_retry,
        )

    return JobView(
        **base,
        state="in_progress",
        percent=reading.percent,
        stage=reading.stage,
    )

"""Progress estimation for watched jobs.

Backends rarely report real progress, so the presenter fabricates a
percentage that creeps up on every poll tick and stops at the feature's
ceiling until the job is confirmed complete. When the backend does report a
value it is shown instead, clamped to ``[0, 100]``. Either way the displayed
number never goes down for the lifetime of one submission.
"""
from __future__ import annotations

from dataclasses import dataclass

from jobwatch.core.schema import FeatureConfig
from jobwatch.domain import JobStatus


@dataclass(slots=True)
class ProgressReading:
    percent: int
    stage: str | None


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class ProgressPresenter:
    """Turn status updates into a monotonic percentage and a stage label."""

    def __init__(self, feature: FeatureConfig) -> None:
        self._feature = feature
        self._value = 0.0
        self._ticks = 0

    @property
    def value(self) -> float:
        return self._value

    @property
    def ticks(self) -> int:
        return self._ticks

    def reset(self) -> None:
        self._value = 0.0
        self._ticks = 0

    def tick(self, status: JobStatus, reported: float | None = None) -> ProgressReading:
        """Advance the estimate for one observed status."""

        self._ticks += 1
        ceiling = self._feature.progress_ceiling

        if status is JobStatus.COMPLETED:
            self._value = 100.0
        elif status is JobStatus.FAILED or status is JobStatus.IDLE:
            pass
        elif reported is not None:
            candidate = min(clamp(reported), ceiling)
            self._value = max(self._value, candidate)
        else:
            step = self._feature.step_queued if status is JobStatus.QUEUED else self._feature.step_processing
            self._value = max(self._value, min(self._value + step, ceiling))

        return self.reading(status)

    def reading(self, status: JobStatus) -> ProgressReading:
        return ProgressReading(percent=int(self._value), stage=self.stage_label(status))

    def stage_label(self, status: JobStatus) -> str | None:
        if status is JobStatus.IDLE:
            return None
        if status is JobStatus.COMPLETED:
            return "Completed"
        if status is JobStatus.FAILED:
            return "Failed"
        if status is JobStatus.QUEUED:
            return self._feature.queued_label

        label: str | None = None
        for stage in sorted(self._feature.stages, key=lambda item: item.at):
            if stage.at <= self._value:
                label = stage.label
        return label or "Processing"

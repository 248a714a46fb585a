"""Normalisation of per-feature backend payloads.

Each feature names its fields differently (``video_url``,
``final_video_url``, ``palace.video_url``, ``tour.video_status`` ...). The
adapter reads them through the feature's :class:`FieldMap` and produces the
canonical :class:`SubmitOutcome` / :class:`JobSnapshot` shapes.
"""
from __future__ import annotations

from typing import Any, Mapping

from jobwatch.core.errors import SubmissionError
from jobwatch.core.logging import get_logger
from jobwatch.core.schema import FeatureConfig
from jobwatch.domain import JobSnapshot, JobStatus, SubmitOutcome, canonical_status

logger = get_logger(__name__)


def lookup(payload: Any, path: str) -> Any:
    """Resolve a dotted path inside nested mappings."""

    node = payload
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
        if node is None:
            return None
    return node


def first_value(payload: Any, paths: list[str]) -> Any:
    for path in paths:
        value = lookup(payload, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _with_fallback(paths: list[str], canonical: str) -> list[str]:
    return paths if canonical in paths else [*paths, canonical]


def _safe_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result:  # NaN
        return None
    return result


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class PayloadAdapter:
    """Maps one feature's payloads onto the canonical job shape."""

    def __init__(self, feature: FeatureConfig) -> None:
        self._feature = feature
        self._fields = feature.payload_fields
        # the canonical field names are always accepted as a last resort
        self._job_id_paths = _with_fallback(self._fields.job_id, "job_id")
        self._status_paths = _with_fallback(self._fields.status, "status")
        self._artifact_paths = _with_fallback(self._fields.artifact, "artifact_url")
        self._error_paths = _with_fallback(self._fields.error, "error")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _label(self, payload: Mapping[str, Any]) -> JobStatus | None:
        label = first_value(payload, self._status_paths)
        if label is None:
            return None
        status = canonical_status(label, self._feature.status_aliases)
        if status is None:
            logger.warning("unknown_status_label", feature=self._feature.name, label=str(label))
            return JobStatus.PROCESSING
        return status

    def _status(self, status: JobStatus | None, artifact_url: str | None) -> JobStatus | None:
        if status is JobStatus.COMPLETED and not artifact_url:
            # the artifact row may lag behind the status flip
            logger.warning("completed_without_artifact", feature=self._feature.name)
            return JobStatus.PROCESSING
        return status

    def _progress(self, payload: Mapping[str, Any]) -> float | None:
        if not self._fields.progress:
            return _safe_float(payload.get("progress"))
        value = _safe_float(lookup(payload, self._fields.progress))
        if value is None:
            return None
        if self._fields.progress_total:
            total = _safe_float(lookup(payload, self._fields.progress_total))
            if not total or total <= 0:
                return None
            return value / total * 100
        return value

    def _metadata(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        for path in self._fields.metadata:
            value = lookup(payload, path)
            if value is not None:
                metadata[path.rsplit(".", 1)[-1]] = value
        return metadata

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def submit_outcome(self, payload: Mapping[str, Any], params: Mapping[str, Any]) -> SubmitOutcome:
        artifact_url = _as_text(first_value(payload, self._artifact_paths))
        metadata = self._metadata(payload)

        if payload.get(self._fields.cached) and artifact_url:
            return SubmitOutcome(
                cached=True,
                artifact_url=artifact_url,
                status=JobStatus.COMPLETED,
                metadata=metadata,
            )

        job_id = _as_text(first_value(payload, self._job_id_paths))
        if job_id is None and self._feature.job_id_param:
            job_id = _as_text(params.get(self._feature.job_id_param))
        if job_id is None:
            raise SubmissionError(f"{self._feature.label}: backend did not return a job id")

        status = self._status(self._label(payload), artifact_url) or JobStatus.QUEUED
        error = _as_text(first_value(payload, self._error_paths)) if status is JobStatus.FAILED else None
        return SubmitOutcome(
            cached=False,
            job_id=job_id,
            artifact_url=artifact_url if status is JobStatus.COMPLETED else None,
            status=status,
            error=error,
            metadata=metadata,
        )

    def snapshot(self, payload: Mapping[str, Any], job_id: str | None = None) -> JobSnapshot:
        artifact_url = _as_text(first_value(payload, self._artifact_paths))
        label = self._label(payload)
        status = self._status(label, artifact_url) or JobStatus.PROCESSING
        awaiting_artifact = label is JobStatus.COMPLETED and not artifact_url
        error = _as_text(first_value(payload, self._error_paths)) if status is JobStatus.FAILED else None
        return JobSnapshot(
            status=status,
            job_id=job_id or _as_text(first_value(payload, self._job_id_paths)),
            artifact_url=artifact_url if status is JobStatus.COMPLETED else None,
            error=error,
            progress=self._progress(payload),
            metadata=self._metadata(payload),
            awaiting_artifact=awaiting_artifact,
        )

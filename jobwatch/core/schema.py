from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

CanonicalStatus = Literal["queued", "processing", "completed", "failed"]

ViewState = Literal[
    "idle",
    "validation_error",
    "login_required",
    "upgrade_required",
    "try_later",
    "in_progress",
    "completed",
    "failed",
]


class FieldMap(BaseModel):
    """Where a feature's backend keeps each canonical job field.

    Paths are dotted (``render_metadata.error``); list-valued entries are tried
    in order and the first non-empty value wins.
    """

    job_id: list[str] = Field(default_factory=lambda: ["job_id", "jobId", "id"])
    status: list[str] = Field(default_factory=lambda: ["status"])
    artifact: list[str] = Field(default_factory=lambda: ["video_url"])
    error: list[str] = Field(default_factory=lambda: ["error", "error_message"])
    progress: str | None = None
    progress_total: str | None = None
    cached: str = "cached"
    metadata: list[str] = Field(default_factory=list)


class StageConfig(BaseModel):
    at: float = Field(ge=0, le=100)
    label: str


class ValidationRule(BaseModel):
    field: str
    message: str
    min_items: int | None = Field(default=None, ge=1)


class FeatureConfig(BaseModel):
    name: str
    label: str
    submit_path: str
    status_path: str
    submit_defaults: dict[str, Any] = Field(default_factory=dict)
    job_id_param: str | None = None
    poll_interval: float = Field(default=5.0, ge=0)
    max_poll_interval: float | None = Field(default=None, ge=0)
    backoff: float = Field(default=1.0, ge=1)
    max_retries: int = Field(default=3, ge=0)
    artifact_grace_polls: int = Field(default=10, ge=1)
    progress_ceiling: float = Field(default=95, gt=0, lt=100)
    step_queued: float = Field(default=1, ge=0)
    step_processing: float = Field(default=2, ge=0)
    queued_label: str = "Queued for generation"
    stages: list[StageConfig] = Field(default_factory=list)
    payload_fields: FieldMap = Field(default_factory=FieldMap)
    status_aliases: dict[str, CanonicalStatus] = Field(default_factory=dict)
    validation: list[ValidationRule] = Field(default_factory=list)
    failure_message: str = "Video generation failed"


class JobView(BaseModel):
    """Render-ready snapshot of one watched job."""

    feature: str
    state: ViewState
    status: str
    watch_id: str | None = None
    job_id: str | None = None
    percent: int = 0
    stage: str | None = None
    artifact_url: str | None = None
    message: str | None = None
    error: str | None = None
    reason: str | None = None
    upgrade_url: str | None = None
    can_retry: bool = False
    retries_used: int = 0
    retries_left: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

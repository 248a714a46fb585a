from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_BASE = "http://localhost:54321/functions/v1"
DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


class Settings(BaseModel):
    """Runtime settings read from the environment."""

    api_base: str = DEFAULT_API_BASE
    api_timeout: float = 30.0
    features_file: Path | None = None
    upgrade_url: str = "/dashboard/pricing"
    max_finished_watches: int = Field(default=200, ge=1)
    cors_origins: list[str] = DEFAULT_ORIGINS
    log_level: str = "info"
    json_logs: bool = True

    @field_validator("api_timeout")
    @classmethod
    def must_be_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("api_base")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    features_file = os.getenv("JOBWATCH_FEATURES_FILE")

    return Settings(
        api_base=os.getenv("JOBWATCH_API_BASE") or DEFAULT_API_BASE,
        api_timeout=float(os.getenv("JOBWATCH_API_TIMEOUT", "30")),
        features_file=Path(features_file).expanduser() if features_file else None,
        upgrade_url=os.getenv("JOBWATCH_UPGRADE_URL") or "/dashboard/pricing",
        max_finished_watches=int(os.getenv("JOBWATCH_MAX_FINISHED_WATCHES", "200")),
        cors_origins=origins or list(DEFAULT_ORIGINS),
        log_level=(os.getenv("LOG_LEVEL") or "info").lower(),
        json_logs=_env_flag("JSON_LOGS", True),
    )

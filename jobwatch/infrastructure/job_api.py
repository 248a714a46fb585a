"""HTTP client for the upstream job API (edge functions and route handlers)."""
from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote, urlparse

import httpx

from jobwatch.core.errors import (
    CapacityExceededError,
    EntitlementDeniedError,
    StatusFetchError,
    SubmissionError,
    UnauthenticatedError,
)
from jobwatch.core.logging import get_logger
from jobwatch.core.schema import FeatureConfig
from jobwatch.domain import JobSnapshot, SubmitOutcome

from .adapters import PayloadAdapter

logger = get_logger(__name__)

UPGRADE_MESSAGE = "Pro subscription required for this feature"
CREDITS_MESSAGE = "You don't have enough credits for this feature."
CAPACITY_MESSAGE = "Video generation queue is full. Please try again in a few minutes."


class JobApiClient:
    """Submits jobs and reads their status on behalf of a signed-in user."""

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._adapters: dict[str, PayloadAdapter] = {}

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _adapter(self, feature: FeatureConfig) -> PayloadAdapter:
        adapter = self._adapters.get(feature.name)
        if adapter is None:
            adapter = PayloadAdapter(feature)
            self._adapters[feature.name] = adapter
        return adapter

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self._api_base}{path}"

    @staticmethod
    def _headers(credential: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credential}",
            "Accept": "application/json",
        }

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _message(body: Mapping[str, Any]) -> str | None:
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def _raise_for_submit(self, feature: FeatureConfig, response: httpx.Response, body: Mapping[str, Any]) -> None:
        status_code = response.status_code
        message = self._message(body)
        error_code = str(body.get("error") or "").strip().upper()

        if status_code == 401:
            raise UnauthenticatedError(message or "Unauthorized")

        if body.get("upgrade_required") or error_code == "UPGRADE_REQUIRED":
            raise EntitlementDeniedError(UPGRADE_MESSAGE, reason="upgrade_required")
        if error_code == "INSUFFICIENT_CREDITS":
            raise EntitlementDeniedError(CREDITS_MESSAGE, reason="insufficient_credits")
        if status_code in (402, 403):
            raise EntitlementDeniedError(message or UPGRADE_MESSAGE, reason="upgrade_required")

        if status_code in (429, 503):
            raise CapacityExceededError(message or CAPACITY_MESSAGE)

        if not response.is_success or body.get("error"):
            raise SubmissionError(message or f"{feature.label}: request failed with HTTP {status_code}")

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def submit(self, feature: FeatureConfig, params: Mapping[str, Any], credential: str | None) -> SubmitOutcome:
        """Start a job. Exactly one request is sent; it is never retried here."""

        if not credential:
            raise UnauthenticatedError("Sign in required")

        payload = {**feature.submit_defaults, **params}
        try:
            response = await self._client.post(
                self._url(feature.submit_path),
                json=payload,
                headers=self._headers(credential),
            )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Failed to start {feature.label.lower()}") from exc

        body = self._json(response)
        self._raise_for_submit(feature, response, body)

        outcome = self._adapter(feature).submit_outcome(body, params)
        logger.info(
            "job_submitted",
            feature=feature.name,
            job_id=outcome.job_id,
            cached=outcome.cached,
            status=outcome.status.value,
        )
        return outcome

    async def fetch_status(self, feature: FeatureConfig, job_id: str, credential: str | None) -> JobSnapshot:
        """Read one status snapshot for ``job_id``."""

        if not credential:
            raise UnauthenticatedError("Sign in required")

        path = feature.status_path.format(job_id=quote(str(job_id), safe=""))
        try:
            response = await self._client.get(self._url(path), headers=self._headers(credential))
        except httpx.HTTPError as exc:
            raise StatusFetchError(f"status poll for {job_id} failed: {exc}") from exc

        if response.status_code == 401:
            raise UnauthenticatedError(self._message(self._json(response)) or "Session expired")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StatusFetchError(f"status poll for {job_id} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise StatusFetchError(f"status poll for {job_id} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise StatusFetchError(f"status poll for {job_id} returned {type(body).__name__}")

        return self._adapter(feature).snapshot(body, job_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_client: JobApiClient | None = None


def configure_job_api(client: JobApiClient | None) -> None:
    """Install the job API client used by the watch service."""

    global _client
    _client = client


def get_job_api() -> JobApiClient | None:
    """Return the configured job API client, if any."""

    return _client

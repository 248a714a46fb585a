from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from jobwatch.core.errors import (
    CapacityExceededError,
    EntitlementDeniedError,
    StatusFetchError,
    SubmissionError,
    UnauthenticatedError,
)
from jobwatch.core.features import load_features
from jobwatch.domain import JobStatus
from jobwatch.infrastructure.job_api import CREDITS_MESSAGE, UPGRADE_MESSAGE, JobApiClient

API_BASE = "https://jobs.example.test/functions/v1"
FEATURES = load_features()


def _client(handler) -> JobApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JobApiClient(API_BASE, http_client=http_client)


def _responding(status_code: int, body) -> JobApiClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)

    return _client(handler)


def test_submit_posts_params_with_bearer_token():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["method"] = request.method
        captured["auth"] = request.headers.get("authorization")
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json={"jobId": "pyq-1", "status": "queued", "estimated_time_minutes": 4})

    client = _client(handler)
    outcome = asyncio.run(client.submit(FEATURES["pyq_video"], {"question_id": "q-17"}, "token-abc"))

    assert captured["method"] == "POST"
    assert captured["url"] == f"{API_BASE}/pyq_video_explanation_pipe"
    assert captured["auth"] == "Bearer token-abc"
    assert captured["body"] == {"question_id": "q-17"}
    assert outcome.job_id == "pyq-1"
    assert outcome.status is JobStatus.QUEUED
    assert outcome.cached is False
    assert outcome.metadata == {"estimated_time_minutes": 4}


def test_submit_merges_feature_defaults_and_falls_back_to_param_id():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json={"success": True, "chapters_queued": 6})

    client = _client(handler)
    outcome = asyncio.run(client.submit(FEATURES["documentary_render"], {"script_id": "doc-9"}, "token"))

    assert captured["body"] == {"action": "start_render", "script_id": "doc-9"}
    assert outcome.job_id == "doc-9"
    assert outcome.status is JobStatus.QUEUED


def test_submit_with_cached_artifact_is_already_complete():
    client = _responding(200, {"cached": True, "video_url": "https://cdn.example.test/short.mp4"})

    outcome = asyncio.run(client.submit(FEATURES["topic_short"], {"topic": "Monsoon"}, "token"))

    assert outcome.cached is True
    assert outcome.is_done
    assert outcome.job_id is None
    assert outcome.artifact_url == "https://cdn.example.test/short.mp4"


def test_submit_without_job_id_is_a_submission_error():
    client = _responding(200, {"success": True})

    with pytest.raises(SubmissionError):
        asyncio.run(client.submit(FEATURES["topic_short"], {"topic": "Monsoon"}, "token"))


def test_submit_without_credential_sends_nothing():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"job_id": "x"})

    client = _client(handler)
    with pytest.raises(UnauthenticatedError):
        asyncio.run(client.submit(FEATURES["topic_short"], {"topic": "Monsoon"}, None))
    assert calls == []


@pytest.mark.parametrize(
    ("status_code", "body", "reason", "message"),
    [
        (403, {"error": "Pro subscription required"}, "upgrade_required", "Pro subscription required"),
        (402, {}, "upgrade_required", UPGRADE_MESSAGE),
        (200, {"upgrade_required": True}, "upgrade_required", UPGRADE_MESSAGE),
        (403, {"error": "UPGRADE_REQUIRED"}, "upgrade_required", UPGRADE_MESSAGE),
        (402, {"error": "INSUFFICIENT_CREDITS"}, "insufficient_credits", CREDITS_MESSAGE),
    ],
)
def test_submit_classifies_entitlement_denials(status_code, body, reason, message):
    client = _responding(status_code, body)

    with pytest.raises(EntitlementDeniedError) as excinfo:
        asyncio.run(client.submit(FEATURES["doubt_video"], {"question": "Why?"}, "token"))

    assert excinfo.value.reason == reason
    assert excinfo.value.message == message


@pytest.mark.parametrize("status_code", [429, 503])
def test_submit_classifies_capacity_limits(status_code):
    client = _responding(status_code, {"message": "Queue is full"})

    with pytest.raises(CapacityExceededError, match="Queue is full"):
        asyncio.run(client.submit(FEATURES["doubt_video"], {"question": "Why?"}, "token"))


def test_submit_rejected_credential_is_unauthenticated():
    client = _responding(401, {"error": "JWT expired"})

    with pytest.raises(UnauthenticatedError):
        asyncio.run(client.submit(FEATURES["doubt_video"], {"question": "Why?"}, "token"))


def test_submit_server_error_carries_backend_message():
    client = _responding(500, {"error": "Script generation failed"})

    with pytest.raises(SubmissionError, match="Script generation failed"):
        asyncio.run(client.submit(FEATURES["topic_short"], {"topic": "Monsoon"}, "token"))


def test_submit_transport_error_is_a_submission_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(SubmissionError):
        asyncio.run(client.submit(FEATURES["topic_short"], {"topic": "Monsoon"}, "token"))


def test_fetch_status_quotes_job_id_into_path():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        return httpx.Response(200, json={"status": "generating"})

    client = _client(handler)
    snapshot = asyncio.run(client.fetch_status(FEATURES["doubt_video"], "a/b", "token"))

    assert captured["path"].endswith("/doubts/a%2Fb")
    assert snapshot.status is JobStatus.PROCESSING
    assert snapshot.job_id == "a/b"


def test_fetch_status_uses_query_style_status_path():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["script_id"] = request.url.params["script_id"]
        return httpx.Response(
            200,
            json={"progress": {"final_status": "rendering_chapters", "completed_chapters": 3, "total_chapters": 6}},
        )

    client = _client(handler)
    snapshot = asyncio.run(client.fetch_status(FEATURES["documentary_render"], "doc-9", "token"))

    assert captured["script_id"] == "doc-9"
    assert snapshot.status is JobStatus.PROCESSING
    assert snapshot.progress == pytest.approx(50.0)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_fetch_status_failures_raise_status_fetch_error(response):
    client = _client(lambda request: response)

    with pytest.raises(StatusFetchError):
        asyncio.run(client.fetch_status(FEATURES["pyq_video"], "pyq-1", "token"))


def test_api_base_requires_scheme_and_host():
    with pytest.raises(ValueError):
        JobApiClient("localhost/functions")


def test_fetch_status_rejected_session_is_unauthenticated():
    client = _responding(401, {"error": "JWT expired"})

    with pytest.raises(UnauthenticatedError, match="JWT expired"):
        asyncio.run(client.fetch_status(FEATURES["pyq_video"], "pyq-1", "token"))

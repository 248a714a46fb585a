from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Header, HTTPException
from fastapi.responses import JSONResponse

from jobwatch.application import WatchNotFoundError, get_watch_service
from jobwatch.core.errors import RetryLimitReachedError, UnknownFeatureError
from jobwatch.core.schema import JobView
from jobwatch.infrastructure import session_from_header

router = APIRouter(prefix="/watches", tags=["watches"])

STATE_STATUS_CODES: dict[str, int] = {
    "validation_error": 400,
    "login_required": 401,
    "upgrade_required": 402,
    "try_later": 429,
}


def _respond(view: JobView) -> JSONResponse:
    status_code = STATE_STATUS_CODES.get(view.state, 200)
    return JSONResponse(status_code=status_code, content={"watch_id": view.watch_id, "view": view.model_dump()})


@router.get("")
async def list_watches() -> dict:
    service = get_watch_service()
    items = [view.model_dump() for view in service.list_watches()]
    return {"summary": service.queue_summary(), "items": items}


@router.post("/{feature}")
async def open_watch(
    feature: str,
    payload: dict[str, Any] | None = None,
    authorization: str | None = Header(default=None),
) -> JSONResponse:
    """Submit a job for ``feature`` and start watching it."""
    service = get_watch_service()
    try:
        view = await service.open_watch(feature, payload, session_from_header(authorization))
    except UnknownFeatureError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _respond(view)


@router.post("/{feature}/attach")
async def attach_watch(
    feature: str,
    payload: dict[str, Any],
    authorization: str | None = Header(default=None),
) -> JSONResponse:
    """Watch a job that was started elsewhere."""
    job_id = payload.get("job_id")
    if not job_id:
        raise HTTPException(status_code=400, detail="job_id is required")
    service = get_watch_service()
    try:
        view = await service.attach_watch(feature, str(job_id), session_from_header(authorization))
    except UnknownFeatureError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _respond(view)


@router.get("/{watch_id}")
async def get_watch(watch_id: str) -> JSONResponse:
    service = get_watch_service()
    try:
        view = service.get_view(watch_id)
    except WatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="watch not found") from exc
    return _respond(view)


@router.post("/{watch_id}/retry")
async def retry_watch(watch_id: str) -> JSONResponse:
    service = get_watch_service()
    try:
        view = await service.retry_watch(watch_id)
    except WatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="watch not found") from exc
    except RetryLimitReachedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _respond(view)


@router.delete("/{watch_id}")
async def close_watch(watch_id: str) -> dict:
    """Stop polling; the upstream job itself keeps running."""
    service = get_watch_service()
    try:
        view = await service.close_watch(watch_id)
    except WatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="watch not found") from exc
    return {"watch_id": watch_id, "closed": True, "view": view.model_dump()}

from __future__ import annotations

from fastapi import APIRouter

from jobwatch.application import get_watch_service

router = APIRouter(prefix="/features", tags=["features"])


@router.get("")
async def list_features() -> dict:
    service = get_watch_service()
    return {"items": service.list_features()}

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app_server.collectors import CollectionError
from app_server.models import MetricsSnapshot, utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/api/status")
async def get_status() -> dict:
    return {"status": "ok", "time": utc_now_iso()}


@router.get("/api/metrics", response_model=MetricsSnapshot)
async def get_metrics(request: Request):
    collector = request.app.state.metrics_collector
    try:
        return await collector.collect()
    except CollectionError as exc:
        logger.exception("Failed to collect metrics")
        return JSONResponse(
            status_code=500,
            content={"error": "failed_to_collect_metrics", "message": str(exc)},
        )

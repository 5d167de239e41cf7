from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app_server.api.routes import router
from app_server.collectors import CpuUsageSampler, MetricsCollector
from app_server.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    app.state.metrics_collector = MetricsCollector(
        sampler=CpuUsageSampler(interval=settings.cpu_sample_interval),
        timeout=settings.cpu_sample_timeout,
        server_name=settings.server_name,
    )
    logger.info("App server listening on port %d", settings.port)

    yield

    # ── shutdown ──────────────────────────────────────
    logger.info("App server shut down")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.include_router(router)


def run() -> None:
    """Console entry point: serve ``app`` with Uvicorn on HOST:PORT."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    run()

"""Tests for app_server.api routes."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from app_server.collectors import MetricsCollector
from app_server.main import app


class ScheduledSampler:
    """Completes on the event loop after ``delay`` seconds."""

    def __init__(self, value, delay: float = 0.05) -> None:
        self.value = value
        self.delay = delay

    def sample(self, on_done, on_error=None) -> None:
        asyncio.get_running_loop().call_later(self.delay, on_done, self.value)


class SilentSampler:
    def sample(self, on_done, on_error=None) -> None:
        pass


# ── fixtures ───────────────────────────────────────────


@pytest.fixture
def _setup_app_state():
    """Inject the collector so routes work without running the lifespan."""
    app.state.metrics_collector = MetricsCollector(
        sampler=ScheduledSampler(0.4321, delay=0.05),
        timeout=1.5,
    )
    yield
    del app.state.metrics_collector


@pytest.fixture
async def client(_setup_app_state):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ── REST tests ─────────────────────────────────────────


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_ok(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_ok(self, client: AsyncClient):
        before = datetime.now(timezone.utc)
        resp = await client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["time"].endswith("Z")
        stamped = datetime.fromisoformat(data["time"].replace("Z", "+00:00"))
        assert abs((stamped - before).total_seconds()) < 5


class TestMetrics:
    @pytest.mark.asyncio
    async def test_snapshot_shape(self, client: AsyncClient):
        resp = await client.get("/api/metrics")
        assert resp.status_code == 200
        data = resp.json()

        assert data["server"] == "app-server"
        assert data["hostname"]
        assert set(data["os"]) == {"platform", "arch", "release"}
        assert set(data["cpu"]) == {"cores", "model", "speedMHz", "usagePercent", "loadAverage"}
        assert set(data["cpu"]["loadAverage"]) == {"1m", "5m", "15m"}
        assert set(data["memory"]) == {"totalBytes", "freeBytes", "usedBytes", "usedPercent"}
        assert isinstance(data["network"]["interfaces"], dict)
        datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))

    @pytest.mark.asyncio
    async def test_sampled_usage(self, client: AsyncClient):
        resp = await client.get("/api/metrics")
        assert resp.json()["cpu"]["usagePercent"] == 43.21

    @pytest.mark.asyncio
    async def test_memory_invariants(self, client: AsyncClient):
        memory = (await client.get("/api/metrics")).json()["memory"]
        used = memory["totalBytes"] - memory["freeBytes"]
        assert memory["usedBytes"] == used
        assert memory["usedPercent"] == pytest.approx(used / memory["totalBytes"] * 100, abs=0.005)

    @pytest.mark.asyncio
    async def test_sampler_timeout_still_responds(self, client: AsyncClient):
        app.state.metrics_collector = MetricsCollector(sampler=SilentSampler(), timeout=0.1)

        resp = await client.get("/api/metrics")

        assert resp.status_code == 200
        data = resp.json()
        assert data["cpu"]["usagePercent"] is None
        assert data["cpu"]["cores"] >= 1
        assert data["memory"]["totalBytes"] > 0

    @pytest.mark.asyncio
    async def test_host_failure_returns_500(self, client: AsyncClient):
        with patch("app_server.collectors.metrics_collector.psutil") as mock_psutil:
            mock_psutil.virtual_memory.side_effect = OSError("meminfo unreadable")
            resp = await client.get("/api/metrics")

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "failed_to_collect_metrics",
            "message": "meminfo unreadable",
        }

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_later_requests(self, client: AsyncClient):
        with patch("app_server.collectors.metrics_collector.psutil") as mock_psutil:
            mock_psutil.virtual_memory.side_effect = OSError("boom")
            assert (await client.get("/api/metrics")).status_code == 500

        assert (await client.get("/health")).status_code == 200
        assert (await client.get("/api/metrics")).status_code == 200


class TestLifespan:
    @pytest.mark.asyncio
    async def test_lifespan_installs_collector(self):
        async with app.router.lifespan_context(app):
            collector = app.state.metrics_collector
            assert isinstance(collector, MetricsCollector)
            assert collector.timeout == 1.5
            assert collector.server_name == "app-server"
        del app.state.metrics_collector

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Current UTC instant as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


class LoadAverage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    one: float = Field(alias="1m")
    five: float = Field(alias="5m")
    fifteen: float = Field(alias="15m")


class OsInfo(BaseModel):
    platform: str
    arch: str
    release: str


class CpuInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cores: int
    model: str | None = None
    speed_mhz: float | None = Field(default=None, alias="speedMHz")
    usage_percent: float | None = Field(default=None, alias="usagePercent")
    load_average: LoadAverage = Field(alias="loadAverage")


class MemoryInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_bytes: int = Field(alias="totalBytes")
    free_bytes: int = Field(alias="freeBytes")
    used_bytes: int = Field(alias="usedBytes")
    used_percent: float = Field(alias="usedPercent")


class NetworkInfo(BaseModel):
    interfaces: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


class MetricsSnapshot(BaseModel):
    """Point-in-time snapshot of host operating-system metrics."""

    server: str
    hostname: str
    os: OsInfo
    cpu: CpuInfo
    memory: MemoryInfo
    network: NetworkInfo
    timestamp: str = Field(default_factory=utc_now_iso)

from __future__ import annotations

import logging
import math
import platform
import socket
import sys
from pathlib import Path
from typing import Any

import psutil

from app_server.collectors.cpu_sampler import CpuUsageSampler, sample_cpu_usage
from app_server.models import (
    CpuInfo,
    LoadAverage,
    MemoryInfo,
    MetricsSnapshot,
    NetworkInfo,
    OsInfo,
)

logger = logging.getLogger(__name__)

_CPUINFO_PATH = Path("/proc/cpuinfo")


class CollectionError(Exception):
    """A host query failed, so no snapshot could be assembled."""


def round2(value: float) -> float:
    """Round half up to two decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def _as_dict(stats_obj: Any) -> dict[str, Any]:
    if hasattr(stats_obj, "_asdict"):
        return dict(stats_obj._asdict())
    return dict(stats_obj)


def _cpu_model() -> str | None:
    """Marketing name of the first CPU, when the platform exposes one."""
    if _CPUINFO_PATH.exists():
        for line in _CPUINFO_PATH.read_text(encoding="utf-8", errors="ignore").splitlines():
            key, _, value = line.partition(":")
            if key.strip() in ("model name", "Processor", "cpu model") and value.strip():
                return value.strip()
    return platform.processor() or None


def _cpu_speed_mhz() -> float | None:
    try:
        freq = psutil.cpu_freq()
    except (NotImplementedError, OSError):
        return None
    if not freq or not freq.current:
        return None
    return freq.current


def _address_record(addr: Any) -> dict[str, Any]:
    record = _as_dict(addr)
    family = record.get("family")
    record["family"] = getattr(family, "name", family)
    return record


def _network_interfaces() -> dict[str, list[dict[str, Any]]]:
    return {
        name: [_address_record(addr) for addr in addrs]
        for name, addrs in psutil.net_if_addrs().items()
    }


def memory_info(total: int, free: int) -> MemoryInfo:
    used = total - free
    return MemoryInfo(
        total_bytes=total,
        free_bytes=free,
        used_bytes=used,
        used_percent=round2(used / total * 100),
    )


class MetricsCollector:
    """Builds a ``MetricsSnapshot`` of the local host on demand.

    Synchronous OS facts are read first; CPU usage is then raced against
    ``timeout`` so a slow or broken sampler degrades to ``usagePercent: null``
    instead of holding up the response.
    """

    def __init__(
        self,
        sampler: CpuUsageSampler | None = None,
        timeout: float = 1.5,
        server_name: str = "app-server",
    ) -> None:
        self.sampler = sampler if sampler is not None else CpuUsageSampler()
        self.timeout = timeout
        self.server_name = server_name

    async def collect(self) -> MetricsSnapshot:
        try:
            host = self._read_host()
        except Exception as exc:
            raise CollectionError(str(exc) or exc.__class__.__name__) from exc

        usage = await sample_cpu_usage(self.sampler, self.timeout)

        try:
            return self._assemble(host, usage)
        except Exception as exc:
            raise CollectionError(str(exc) or exc.__class__.__name__) from exc

    def _read_host(self) -> dict[str, Any]:
        memory = psutil.virtual_memory()
        return {
            "hostname": socket.gethostname(),
            "os": OsInfo(
                platform=sys.platform,
                arch=platform.machine(),
                release=platform.release(),
            ),
            "cores": psutil.cpu_count(logical=True) or 0,
            "model": _cpu_model(),
            "speed_mhz": _cpu_speed_mhz(),
            "load": psutil.getloadavg(),
            "total_mem": memory.total,
            "free_mem": memory.available,
            "interfaces": _network_interfaces(),
        }

    def _assemble(self, host: dict[str, Any], usage: float | None) -> MetricsSnapshot:
        one, five, fifteen = host["load"]
        return MetricsSnapshot(
            server=self.server_name,
            hostname=host["hostname"],
            os=host["os"],
            cpu=CpuInfo(
                cores=host["cores"],
                model=host["model"],
                speed_mhz=host["speed_mhz"],
                usage_percent=None if usage is None else round2(usage * 100),
                load_average=LoadAverage(one=one, five=five, fifteen=fifteen),
            ),
            memory=memory_info(host["total_mem"], host["free_mem"]),
            network=NetworkInfo(interfaces=host["interfaces"]),
        )

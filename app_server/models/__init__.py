from .metrics import (
    CpuInfo,
    LoadAverage,
    MemoryInfo,
    MetricsSnapshot,
    NetworkInfo,
    OsInfo,
    utc_now_iso,
)

__all__ = [
    "CpuInfo",
    "LoadAverage",
    "MemoryInfo",
    "MetricsSnapshot",
    "NetworkInfo",
    "OsInfo",
    "utc_now_iso",
]

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable

import psutil

from app_server.collectors.deadline import SettleOnce, race_deadline

logger = logging.getLogger(__name__)

OnDone = Callable[[float], None]
OnError = Callable[[BaseException], None]


def _idle_ticks(times: Any) -> float:
    return times.idle + getattr(times, "iowait", 0.0)


def _total_ticks(times: Any) -> float:
    # Linux already counts guest time inside user/nice.
    return sum(times) - getattr(times, "guest", 0.0) - getattr(times, "guest_nice", 0.0)


def busy_fraction(start: Any, end: Any) -> float:
    """Share of non-idle CPU time between two ``psutil.cpu_times()`` readings."""
    total = _total_ticks(end) - _total_ticks(start)
    if total <= 0:
        return 0.0
    idle = _idle_ticks(end) - _idle_ticks(start)
    return min(1.0, max(0.0, 1.0 - idle / total))


class CpuUsageSampler:
    """Measures CPU utilisation by comparing tick counters across an interval.

    ``sample()`` returns immediately; the result is delivered to ``on_done``
    from a daemon worker thread once ``interval`` seconds have passed. There
    is no timeout and no way to cancel a sample in flight.
    """

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval

    def sample(self, on_done: OnDone, on_error: OnError | None = None) -> None:
        start = psutil.cpu_times()
        worker = threading.Thread(
            target=self._finish,
            args=(start, on_done, on_error),
            name="cpu-usage-sampler",
            daemon=True,
        )
        worker.start()

    def _finish(self, start: Any, on_done: OnDone, on_error: OnError | None) -> None:
        time.sleep(self.interval)
        try:
            end = psutil.cpu_times()
        except Exception as exc:
            if on_error is None:
                logger.exception("CPU usage sample failed")
                return
            on_error(exc)
            return
        on_done(busy_fraction(start, end))


def _is_fraction(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


async def sample_cpu_usage(sampler: CpuUsageSampler, timeout: float) -> float | None:
    """Busy fraction from ``sampler``, or ``None`` if it fails or misses ``timeout``."""

    def start(latch: SettleOnce) -> None:
        sampler.sample(latch.resolve_threadsafe, latch.reject_threadsafe)

    try:
        value = await race_deadline(start, timeout)
    except Exception:
        logger.warning("CPU usage sampling failed", exc_info=True)
        return None
    if value is None:
        return None
    if not _is_fraction(value):
        logger.warning("CPU usage sampler returned non-numeric value %r", value)
        return None
    return float(value)

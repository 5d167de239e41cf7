from .cpu_sampler import CpuUsageSampler, busy_fraction, sample_cpu_usage
from .deadline import SettleOnce, race_deadline
from .metrics_collector import CollectionError, MetricsCollector, round2

__all__ = [
    "CollectionError",
    "CpuUsageSampler",
    "MetricsCollector",
    "SettleOnce",
    "busy_fraction",
    "race_deadline",
    "round2",
    "sample_cpu_usage",
]

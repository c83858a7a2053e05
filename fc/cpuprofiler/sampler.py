"""Aggregate CPU utilization from two snapshots of the cumulative CPU times.

The kernel counts the time all CPUs spent in each category since boot.
Sampling it twice and relating the per-category deltas to the total delta
gives the share of each category during the interval.
"""

import logging
import time
from dataclasses import dataclass, fields

import psutil

from fc.cpuprofiler.errors import MeasurementError

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpuSnapshot:
    """Cumulative CPU times in seconds. Categories the platform does not
    report stay at 0."""

    user: float = 0.0
    system: float = 0.0
    idle: float = 0.0
    nice: float = 0.0
    iowait: float = 0.0
    irq: float = 0.0
    softirq: float = 0.0
    steal: float = 0.0
    guest: float = 0.0
    guest_nice: float = 0.0

    @classmethod
    def from_cpu_times(cls, times):
        return cls(
            **{
                f.name: float(getattr(times, f.name, 0.0))
                for f in fields(cls)
            }
        )

    @property
    def total(self):
        return sum(getattr(self, f.name) for f in fields(self))


CATEGORIES = [f.name for f in fields(CpuSnapshot)]


@dataclass(frozen=True)
class CpuUtilization:
    """Percentage per CPU time category over one sample interval."""

    user: float
    system: float
    idle: float
    nice: float
    iowait: float
    irq: float
    softirq: float
    steal: float
    guest: float
    guest_nice: float

    @property
    def used(self):
        return 100 - self.idle

    def perfdata(self):
        """Performance data as `key=value` strings.

        Counter jitter can produce tiny negative shares, those are reported
        as 0.
        """
        keys = [
            ("cpu_idle", "idle"),
            ("cpu_system", "system"),
            ("cpu_user", "user"),
            ("cpu_nice", "nice"),
            ("cpu_iowait", "iowait"),
            ("cpu_irq", "irq"),
            ("cpu_softirq", "softirq"),
            ("cpu_steal", "steal"),
            ("cpu_guest", "guest"),
            ("cpu_guestnice", "guest_nice"),
        ]
        out = []
        for label, category in keys:
            value = getattr(self, category)
            if value < 0:
                _log.debug("clamping negative %s share %f to 0", category, value)
                value = 0.0
            out.append(f"{label}={value:.2f}")
        return out


def take_snapshot():
    try:
        times = psutil.cpu_times(percpu=False)
    except (OSError, psutil.Error) as e:
        raise MeasurementError(f"error obtaining CPU timings: {e}") from e
    return CpuSnapshot.from_cpu_times(times)


def compute_utilization(start, end):
    total_delta = end.total - start.total
    if total_delta <= 0:
        raise MeasurementError(
            f"CPU time did not advance between samples (delta {total_delta})"
        )
    return CpuUtilization(
        **{
            category: (getattr(end, category) - getattr(start, category))
            / total_delta
            * 100
            for category in CATEGORIES
        }
    )


def sample(interval):
    """Measure CPU utilization over `interval` seconds. Blocks for the
    whole interval."""
    if interval <= 0:
        raise MeasurementError(f"invalid sample interval: {interval}")
    start = take_snapshot()
    _log.debug("first CPU snapshot: %s", start)
    time.sleep(interval)
    end = take_snapshot()
    _log.debug("second CPU snapshot: %s", end)
    utilization = compute_utilization(start, end)
    _log.info("CPU usage over %ds: %.2f%%", interval, utilization.used)
    return utilization

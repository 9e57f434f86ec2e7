"""System resource sampling during a benchmark session."""

import time
import psutil
import numpy as np
import matplotlib.pyplot as plt
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..utils.logging import LoggerMixin

CHART_STYLE = 'seaborn-v0_8'


def _clamp_percent(value: float) -> float:
    return float(min(100.0, max(0.0, value)))


@dataclass(frozen=True)
class MetricsSnapshot:
    """System metrics captured at one instant. Percentages are 0-100."""
    timestamp: datetime
    cpu_percent: float
    ram_percent: float
    disk_utilization_percent: float
    disk_temperature_c: Optional[float] = None

    def __post_init__(self):
        for name in ('cpu_percent', 'ram_percent', 'disk_utilization_percent'):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'cpu_percent': self.cpu_percent,
            'ram_percent': self.ram_percent,
            'disk_utilization_percent': self.disk_utilization_percent,
            'disk_temperature_c': self.disk_temperature_c,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetricsSnapshot':
        return cls(
            timestamp=datetime.fromisoformat(data['timestamp']),
            cpu_percent=float(data['cpu_percent']),
            ram_percent=float(data['ram_percent']),
            disk_utilization_percent=float(data['disk_utilization_percent']),
            disk_temperature_c=data.get('disk_temperature_c'),
        )

    def __str__(self) -> str:
        temperature = "n/a" if self.disk_temperature_c is None else f"{self.disk_temperature_c:.1f}C"
        return (
            f"{self.timestamp.isoformat()} cpu={self.cpu_percent:.1f}% "
            f"ram={self.ram_percent:.1f}% disk={self.disk_utilization_percent:.1f}% "
            f"temp={temperature}"
        )


@dataclass
class MetricsStats:
    """Aggregated statistics over a snapshot sequence."""
    samples: int = 0
    cpu: Dict[str, float] = field(default_factory=dict)
    ram: Dict[str, float] = field(default_factory=dict)
    disk: Dict[str, float] = field(default_factory=dict)


class MetricsSource(ABC):
    """Produces one MetricsSnapshot per call."""

    @abstractmethod
    def sample(self) -> MetricsSnapshot:
        pass


class PsutilMetricsSource(MetricsSource):
    """Real operating system metrics via psutil.

    Disk utilization is the share of wall time the disks reported as busy
    since the previous sample, which psutil only exposes on some platforms;
    elsewhere it reads as 0.
    """

    TEMPERATURE_SENSORS = ('nvme', 'drivetemp')

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # Prime the CPU counter so the first sample is meaningful
        psutil.cpu_percent(interval=None)
        self._prev_busy_ms = self._disk_busy_ms()
        self._prev_time = self._clock()

    def sample(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            timestamp=datetime.now(timezone.utc),
            cpu_percent=_clamp_percent(psutil.cpu_percent(interval=None)),
            ram_percent=_clamp_percent(psutil.virtual_memory().percent),
            disk_utilization_percent=self._disk_utilization(),
            disk_temperature_c=self._disk_temperature(),
        )

    @staticmethod
    def _disk_busy_ms() -> Optional[int]:
        counters = psutil.disk_io_counters()
        if counters is None:
            return None
        return getattr(counters, 'busy_time', None)

    def _disk_utilization(self) -> float:
        now = self._clock()
        busy_ms = self._disk_busy_ms()
        utilization = 0.0
        if busy_ms is not None and self._prev_busy_ms is not None and now > self._prev_time:
            utilization = (busy_ms - self._prev_busy_ms) / ((now - self._prev_time) * 1000.0) * 100.0
        self._prev_busy_ms = busy_ms
        self._prev_time = now
        return _clamp_percent(utilization)

    def _disk_temperature(self) -> Optional[float]:
        sensors = getattr(psutil, 'sensors_temperatures', None)
        if sensors is None:
            return None
        readings = sensors()
        for name in self.TEMPERATURE_SENSORS:
            if readings.get(name):
                return float(readings[name][0].current)
        return None


class RandomMetricsSource(MetricsSource):
    """Uniform placeholder values, for tests and platforms without psutil support."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def sample(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            timestamp=datetime.now(timezone.utc),
            cpu_percent=float(self._rng.random() * 50),
            ram_percent=float(self._rng.random() * 70),
            disk_utilization_percent=float(self._rng.random() * 80),
            disk_temperature_c=None,
        )


class ResourceSampler(LoggerMixin):
    """Samples a MetricsSource on a background thread at a fixed cadence."""

    def __init__(self, source: Optional[MetricsSource] = None):
        """Initialize the sampler.

        Args:
            source: Where snapshots come from. Defaults to psutil.
        """
        super().__init__()
        self.source = source if source is not None else PsutilMetricsSource()
        self.interval: Optional[float] = None
        self._snapshots: List[MetricsSnapshot] = []
        self._lock = Lock()
        self._running = False
        self._stop_event = Event()
        self._sampler_thread: Optional[Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, interval: float) -> None:
        """Start sampling every ``interval`` seconds, beginning immediately."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._running:
            self.logger.warning("Resource sampler is already running")
            return

        self.interval = interval
        self._running = True
        self._stop_event.clear()

        self._sampler_thread = Thread(target=self._sample_loop, name="resource-sampler", daemon=True)
        self._sampler_thread.start()
        self.logger.info(f"Resource sampling started (every {interval:.2f}s)")

    def stop(self) -> None:
        """Stop sampling. Snapshots captured so far are kept."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._sampler_thread and self._sampler_thread.is_alive():
            self._sampler_thread.join(timeout=5.0)
        self._sampler_thread = None

        self.logger.info(f"Resource sampling stopped. Collected {len(self.snapshots())} samples")

    def _sample_loop(self) -> None:
        while True:
            self._capture()
            if self._stop_event.wait(self.interval):
                break

    def _capture(self) -> None:
        try:
            snapshot = self.source.sample()
        except Exception as e:
            self.logger.error(f"Error collecting system metrics: {e}")
            return
        with self._lock:
            self._snapshots.append(snapshot)

    def snapshots(self) -> Tuple[MetricsSnapshot, ...]:
        """Snapshots captured so far, in capture order."""
        with self._lock:
            return tuple(self._snapshots)

    def get_stats(self) -> MetricsStats:
        return summarize_snapshots(self.snapshots())

    def plot_metrics(self, save_path: Union[str, Path]) -> Optional[Path]:
        return plot_snapshots(self.snapshots(), save_path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()


def _describe(values: Sequence[float]) -> Dict[str, float]:
    return {
        'avg': float(np.mean(values)),
        'max': float(np.max(values)),
        'min': float(np.min(values)),
        'p95': float(np.percentile(values, 95)),
    }


def summarize_snapshots(snapshots: Sequence[MetricsSnapshot]) -> MetricsStats:
    """Aggregate avg/max/min/p95 per metric."""
    if not snapshots:
        return MetricsStats()

    return MetricsStats(
        samples=len(snapshots),
        cpu=_describe([s.cpu_percent for s in snapshots]),
        ram=_describe([s.ram_percent for s in snapshots]),
        disk=_describe([s.disk_utilization_percent for s in snapshots]),
    )


def plot_snapshots(snapshots: Iterable[MetricsSnapshot], save_path: Union[str, Path]) -> Optional[Path]:
    """Plot CPU, RAM and disk utilization over time to a PNG."""
    snapshots = list(snapshots)
    if not snapshots:
        return None

    origin = snapshots[0].timestamp
    seconds = [(s.timestamp - origin).total_seconds() for s in snapshots]
    save_path = Path(save_path)

    with plt.style.context(CHART_STYLE):
        fig, (ax1, ax2, ax3) = plt.subplots(3, 1, figsize=(10, 9), sharex=True)

        ax1.plot(seconds, [s.cpu_percent for s in snapshots], 'b-', linewidth=2)
        ax1.set_ylabel('CPU (%)')
        ax1.set_title('CPU Usage Over Time')

        ax2.plot(seconds, [s.ram_percent for s in snapshots], 'r-', linewidth=2)
        ax2.set_ylabel('RAM (%)')
        ax2.set_title('Memory Usage Over Time')

        ax3.plot(seconds, [s.disk_utilization_percent for s in snapshots], color='purple', linewidth=2)
        ax3.set_ylabel('Disk busy (%)')
        ax3.set_xlabel('Time (seconds)')
        ax3.set_title('Disk Utilization Over Time')

        for ax in (ax1, ax2, ax3):
            ax.grid(True, alpha=0.3)
            ax.set_ylim(0, 100)

        fig.tight_layout()
        fig.savefig(save_path, dpi=120, bbox_inches='tight')
        plt.close(fig)
    return save_path

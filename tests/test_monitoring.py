"""Test system resource sampling."""

import time
from datetime import datetime, timedelta, timezone

import pytest

from storagemark.core.monitoring import (
    MetricsSnapshot,
    MetricsSource,
    PsutilMetricsSource,
    RandomMetricsSource,
    ResourceSampler,
    plot_snapshots,
    summarize_snapshots,
)

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FlakySource(MetricsSource):
    """Fails on every other sample."""

    def __init__(self):
        self.calls = 0

    def sample(self):
        self.calls += 1
        if self.calls % 2 == 0:
            raise RuntimeError("sensor unavailable")
        return MetricsSnapshot(T0, 1.0, 2.0, 3.0)


class TestMetricsSnapshot:
    """Test metrics snapshot values."""

    @pytest.mark.parametrize("field", ["cpu_percent", "ram_percent", "disk_utilization_percent"])
    def test_percent_range(self, field):
        values = dict(timestamp=T0, cpu_percent=0.0, ram_percent=100.0, disk_utilization_percent=50.0)
        MetricsSnapshot(**values)

        values[field] = 100.5
        with pytest.raises(ValueError):
            MetricsSnapshot(**values)

        values[field] = -1.0
        with pytest.raises(ValueError):
            MetricsSnapshot(**values)

    def test_dict_round_trip(self):
        snapshot = MetricsSnapshot(T0, 12.5, 40.25, 99.0, disk_temperature_c=41.0)
        assert MetricsSnapshot.from_dict(snapshot.to_dict()) == snapshot

    def test_str(self):
        text = str(MetricsSnapshot(T0, 12.5, 40.25, 99.0))
        assert "cpu=12.5%" in text
        assert "temp=n/a" in text


class TestMetricsSources:
    """Test snapshot sources."""

    def test_random_source_ranges(self):
        source = RandomMetricsSource(seed=3)
        for _ in range(50):
            snapshot = source.sample()
            assert 0.0 <= snapshot.cpu_percent < 50.0
            assert 0.0 <= snapshot.ram_percent < 70.0
            assert 0.0 <= snapshot.disk_utilization_percent < 80.0
            assert snapshot.disk_temperature_c is None

    def test_random_source_seeded(self):
        first = RandomMetricsSource(seed=3).sample()
        second = RandomMetricsSource(seed=3).sample()
        assert first.cpu_percent == second.cpu_percent
        assert first.ram_percent == second.ram_percent

    def test_psutil_source(self):
        snapshot = PsutilMetricsSource().sample()
        assert 0.0 <= snapshot.cpu_percent <= 100.0
        assert 0.0 <= snapshot.ram_percent <= 100.0
        assert 0.0 <= snapshot.disk_utilization_percent <= 100.0
        assert snapshot.timestamp.tzinfo is not None


class TestResourceSampler:
    """Test the background sampler."""

    def test_samples_until_stopped(self):
        sampler = ResourceSampler(RandomMetricsSource(seed=1))

        sampler.start(0.02)
        assert sampler.running
        time.sleep(0.15)
        sampler.stop()

        collected = sampler.snapshots()
        assert len(collected) >= 2
        assert not sampler.running

        # Snapshots are kept after stopping and no more are added
        time.sleep(0.05)
        assert sampler.snapshots() == collected

    def test_first_sample_is_immediate(self):
        with ResourceSampler(RandomMetricsSource(seed=1)) as sampler:
            sampler.start(5.0)
            deadline = time.monotonic() + 2.0
            while not sampler.snapshots() and time.monotonic() < deadline:
                time.sleep(0.01)
            assert len(sampler.snapshots()) == 1

        assert not sampler.running

    def test_stop_is_idempotent(self):
        sampler = ResourceSampler(RandomMetricsSource())
        sampler.stop()
        sampler.start(0.1)
        sampler.stop()
        sampler.stop()
        assert not sampler.running

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ResourceSampler(RandomMetricsSource()).start(0)

    def test_sample_errors_do_not_stop_loop(self):
        source = FlakySource()
        sampler = ResourceSampler(source)

        sampler.start(0.01)
        deadline = time.monotonic() + 2.0
        while source.calls < 4 and time.monotonic() < deadline:
            time.sleep(0.01)
        sampler.stop()

        assert source.calls >= 4
        assert len(sampler.snapshots()) >= 2

    def test_stats_and_plot(self, tmp_path):
        sampler = ResourceSampler(RandomMetricsSource(seed=5))
        sampler.start(0.01)
        time.sleep(0.05)
        sampler.stop()

        stats = sampler.get_stats()
        assert stats.samples == len(sampler.snapshots())
        assert stats.cpu['min'] <= stats.cpu['avg'] <= stats.cpu['max']

        chart = sampler.plot_metrics(tmp_path / "metrics.png")
        assert chart.exists()


class TestSnapshotHelpers:
    """Test snapshot aggregation helpers."""

    def test_summarize_snapshots(self):
        snapshots = [
            MetricsSnapshot(T0 + timedelta(seconds=i), cpu, 50.0, 10.0)
            for i, cpu in enumerate([10.0, 20.0, 30.0, 40.0])
        ]

        stats = summarize_snapshots(snapshots)

        assert stats.samples == 4
        assert stats.cpu['avg'] == pytest.approx(25.0)
        assert stats.cpu['max'] == 40.0
        assert stats.cpu['min'] == 10.0
        assert stats.ram['avg'] == 50.0

    def test_summarize_empty(self):
        stats = summarize_snapshots([])
        assert stats.samples == 0
        assert stats.cpu == {}

    def test_plot_empty(self, tmp_path):
        assert plot_snapshots([], tmp_path / "none.png") is None
        assert not (tmp_path / "none.png").exists()

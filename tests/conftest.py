"""Shared fixtures for storage benchmark tests."""

import itertools
from datetime import datetime, timezone

import pytest

from storagemark.core.config import BenchmarkConfig, MIB, KIB, TestType
from storagemark.core.paths import BenchmarkPaths
from storagemark.core.results import BenchmarkResult

SESSION_ID = "sm-test"


@pytest.fixture
def make_config(tmp_path):
    """Factory for small configurations.

    Real configurations need at least 1 GiB per file, far too slow for unit
    tests, so validation is bypassed with model_construct.
    """
    def factory(**overrides):
        values = dict(
            test_directory=tmp_path,
            file_size_bytes=8 * MIB,
            block_size_bytes=64 * KIB,
            threads=1,
            iterations=3,
            warmup_iterations=0,
            queue_depth=1,
            random_seed=42,
            collect_system_metrics=False,
            session_id=SESSION_ID,
        )
        values.update(overrides)
        return BenchmarkConfig.model_construct(**values)

    return factory


@pytest.fixture
def paths(tmp_path):
    return BenchmarkPaths(tmp_path, SESSION_ID)


@pytest.fixture
def step_clock():
    """Nanosecond clock advancing 10 ms per call."""
    counter = itertools.count(0, 10_000_000)
    return lambda: next(counter)


def _result(run_id=1, test_type=TestType.SEQ_WRITE, throughput=800.0, latency=0.08, iops=12800.0):
    return BenchmarkResult(
        run_id=run_id,
        test_type=test_type,
        bytes_processed=8 * MIB,
        elapsed_ns=10_000_000,
        throughput_mbps=throughput,
        avg_latency_ms=latency,
        iops=iops,
        timestamp=datetime(2024, 5, 1, 12, 0, run_id, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_result():
    """Factory for BenchmarkResult instances with fixed timing."""
    return _result

"""Test utility helpers."""

import itertools
import logging

import pytest

from storagemark.utils.env import Env
from storagemark.utils.logging import LoggerMixin, get_logger, setup_logging, verbosity_to_level
from storagemark.utils.partition import BlockRange, partition_blocks
from storagemark.utils.timer import Timer


class TestPartitionBlocks:
    """Test block range partitioning."""

    def test_even_split(self):
        assert partition_blocks(8, 4) == [
            BlockRange(0, 2), BlockRange(2, 4), BlockRange(4, 6), BlockRange(6, 8)
        ]

    def test_remainder_goes_to_earlier_ranges(self):
        ranges = partition_blocks(10, 3)
        assert ranges == [BlockRange(0, 4), BlockRange(4, 7), BlockRange(7, 10)]
        assert [r.block_count for r in ranges] == [4, 3, 3]

    def test_more_parts_than_blocks(self):
        assert partition_blocks(2, 5) == [BlockRange(0, 1), BlockRange(1, 2)]

    def test_single_part(self):
        assert partition_blocks(8192, 1) == [BlockRange(0, 8192)]

    @pytest.mark.parametrize("total,parts", [(0, 4), (10, 0)])
    def test_nothing_to_split(self, total, parts):
        assert partition_blocks(total, parts) == []

    def test_ranges_cover_every_block_once(self):
        ranges = partition_blocks(1025, 7)
        covered = [block for r in ranges for block in range(r.first_block, r.end_block)]
        assert covered == list(range(1025))


class TestTimer:
    """Test the nanosecond timer."""

    def test_elapsed_units(self):
        ticks = iter([1_000_000_000, 3_500_000_000])
        timer = Timer(lambda: next(ticks)).start()

        assert timer.stop() == 2_500_000_000
        assert timer.elapsed_millis() == 2500.0
        assert timer.elapsed_seconds() == 2.5

    def test_running_timer_reads_clock(self):
        counter = itertools.count(0, 5)
        timer = Timer(lambda: next(counter)).start()
        assert timer.elapsed_nanos() == 5

    def test_never_started(self):
        with pytest.raises(RuntimeError):
            Timer().stop()

    def test_default_clock(self):
        timer = Timer().start()
        assert timer.stop() >= 0


class TestEnv:
    """Test environment variable helpers."""

    def test_typed_values(self, monkeypatch):
        monkeypatch.setenv("SM_TEST_LONG", "12")
        monkeypatch.setenv("SM_TEST_DOUBLE", "0.25")
        monkeypatch.setenv("SM_TEST_BOOL", "Yes")
        monkeypatch.setenv("SM_TEST_LIST", "a, b,,c")

        assert Env.get_long("SM_TEST_LONG", None) == 12
        assert Env.get_double("SM_TEST_DOUBLE", None) == 0.25
        assert Env.get_bool("SM_TEST_BOOL", False) is True
        assert Env.get_list("SM_TEST_LIST") == ["a", "b", "c"]

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SM_TEST_MISSING", raising=False)
        monkeypatch.setenv("SM_TEST_BAD", "abc")

        assert Env.get_long("SM_TEST_MISSING", 3) == 3
        assert Env.get_long("SM_TEST_BAD", 4) == 4
        assert Env.get_bool("SM_TEST_MISSING", True) is True

    def test_not_instantiable(self):
        with pytest.raises(RuntimeError):
            Env()


class TestLogging:
    """Test logging setup."""

    def test_verbosity_levels(self):
        assert verbosity_to_level(0) == "WARNING"
        assert verbosity_to_level(1) == "INFO"
        assert verbosity_to_level(2) == "DEBUG"

    def test_component_logger(self, tmp_path):
        log_file = tmp_path / "logs" / "bench.log"
        logger = setup_logging(level="DEBUG", log_file=str(log_file), component="unit", enable_rich=False)

        assert logger.name == "py-storagemark.unit"
        logger.debug("hello from the test")
        for handler in logging.getLogger("py-storagemark").handlers:
            handler.flush()

        assert "hello from the test" in log_file.read_text()
        setup_logging(level="INFO", enable_rich=False)

    def test_logger_mixin(self):
        class DiskProbe(LoggerMixin):
            pass

        assert DiskProbe().logger is get_logger("diskprobe")

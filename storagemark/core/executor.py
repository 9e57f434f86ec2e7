"""Timed I/O execution for a single benchmark run.

A run splits the file's blocks into ``threads`` contiguous ranges. Each range
is driven by an IOStream that owns a cursor, one reusable read buffer and a
random generator spawned from the configured seed, so a fixed seed replays
the same offsets and payloads. At most ``queue_depth`` operations are in
flight across all streams at any moment.

Operations use positional reads/writes (``os.preadv``/``os.pwrite``) on a
single shared descriptor, which requires a POSIX platform.
"""

import asyncio
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union
import numpy as np

from .config import BenchmarkConfig, IoMode, MIB, TestType
from .errors import BenchmarkIOError, MeasurementError
from .paths import BenchmarkPaths
from .results import BenchmarkResult
from ..utils.logging import LoggerMixin
from ..utils.partition import BlockRange, partition_blocks
from ..utils.timer import Timer, NANOS_PER_MILLI, NANOS_PER_SECOND

_OPEN_FLAGS = os.O_RDWR | os.O_CREAT | getattr(os, 'O_BINARY', 0)
_PREPARE_CHUNK = 1 * MIB
_SEED_MASK = 0xFFFFFFFFFFFFFFFF


def _entropy(seed: Optional[int]) -> Optional[int]:
    # SeedSequence rejects negative entropy, so signed seeds fold into 64 bits
    return None if seed is None else seed & _SEED_MASK


class IOStream:
    """One worker's contiguous share of a run."""

    def __init__(
        self,
        fd: int,
        test_type: TestType,
        block_range: BlockRange,
        block_size: int,
        file_size: int,
        rng: np.random.Generator
    ):
        self.fd = fd
        self.test_type = test_type
        self.block_size = block_size
        self.block_count = block_range.block_count
        self.range_start = block_range.first_block * block_size
        self.range_end = min(block_range.end_block * block_size, file_size)
        self.rng = rng

        self.buffer = bytearray(block_size)
        self._view = memoryview(self.buffer)

        self.position = self.range_start
        self.bytes_processed = 0
        self.operations = 0

    def next_offset(self) -> int:
        """Uniform pseudo-random cursor position in [range_start, range_end)."""
        return int(self.rng.integers(self.range_start, self.range_end))

    def perform_op(self) -> None:
        """Issue one block operation at the cursor and advance it."""
        if self.test_type.is_write:
            # Fresh pseudo-random payload per write
            transferred = os.pwrite(self.fd, self.rng.bytes(self.block_size), self.position)
        else:
            transferred = os.preadv(self.fd, [self._view], self.position)

        if self.test_type.is_random:
            self.position = self.next_offset()
        else:
            self.position += transferred

        # A short final block still counts as a full block
        self.bytes_processed += self.block_size
        self.operations += 1


class WorkloadExecutor(LoggerMixin):
    """Performs timed I/O passes and turns them into BenchmarkResults."""

    def __init__(
        self,
        config: BenchmarkConfig,
        paths: BenchmarkPaths,
        nano_clock: Optional[Callable[[], int]] = None
    ):
        super().__init__()
        self.config = config
        self.paths = paths
        self.nano_clock = nano_clock
        self._pool: Optional[ThreadPoolExecutor] = None

    @property
    def pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=max(self.config.threads, self.config.queue_depth),
                thread_name_prefix="io-worker"
            )
        return self._pool

    def close(self) -> None:
        """Release the worker pool."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def execute(
        self,
        run_id: int,
        test_type: TestType,
        path: Optional[Union[str, Path]] = None
    ) -> BenchmarkResult:
        """Run one timed pass of ``test_type`` and return its result.

        Args:
            run_id: Identifier recorded on the result and used for the file name
            test_type: Workload to execute
            path: Explicit target file; defaults to the run's data file

        Raises:
            BenchmarkIOError: open, read, write or flush failed
            MeasurementError: elapsed time rounds to zero
        """
        path = Path(path) if path is not None else self.paths.test_file_path(run_id, test_type.descriptor)
        config = self.config

        ranges = partition_blocks(config.blocks_per_file, config.threads)
        # One child per stream plus one for preparing read files
        seeds = np.random.SeedSequence(_entropy(config.random_seed)).spawn(len(ranges) + 1)

        self.logger.debug(
            f"Run {run_id}: {test_type.value} on {path} with {len(ranges)} stream(s), "
            f"queue depth {config.queue_depth}, {config.io_mode.value} mode"
        )

        try:
            fd = os.open(path, _OPEN_FLAGS, 0o644)
        except OSError as e:
            raise BenchmarkIOError(f"Cannot open test file {path}: {e}", path=path, run_id=run_id) from e

        try:
            if not test_type.is_write:
                self._prepare_for_read(fd, np.random.default_rng(seeds[-1]))

            streams = [
                IOStream(fd, test_type, block_range, config.block_size_bytes,
                         config.file_size_bytes, np.random.default_rng(seed))
                for block_range, seed in zip(ranges, seeds)
            ]

            timer = Timer(self.nano_clock).start()
            if config.io_mode == IoMode.ASYNC:
                asyncio.run(self._drive_async(streams))
            else:
                self._drive_sync(streams)
            if test_type.is_write:
                os.fsync(fd)
            elapsed_ns = timer.stop()
        except OSError as e:
            raise BenchmarkIOError(
                f"I/O failure during run {run_id} ({test_type.value}) on {path}: {e}",
                path=path, run_id=run_id
            ) from e
        finally:
            os.close(fd)

        finished = datetime.now(timezone.utc)
        total_ops = sum(s.operations for s in streams)
        bytes_processed = sum(s.bytes_processed for s in streams)

        return self._build_result(run_id, test_type, bytes_processed, total_ops, elapsed_ns, finished)

    def _build_result(
        self,
        run_id: int,
        test_type: TestType,
        bytes_processed: int,
        total_ops: int,
        elapsed_ns: int,
        finished: datetime
    ) -> BenchmarkResult:
        elapsed_ms = elapsed_ns / NANOS_PER_MILLI
        if total_ops == 0 or round(elapsed_ms) == 0:
            raise MeasurementError(
                f"Run {run_id} ({test_type.value}) cannot be measured: "
                f"{total_ops} operations in {elapsed_ms:.3f} ms"
            )

        elapsed_seconds = elapsed_ns / NANOS_PER_SECOND
        result = BenchmarkResult(
            run_id=run_id,
            test_type=test_type,
            bytes_processed=bytes_processed,
            elapsed_ns=elapsed_ns,
            throughput_mbps=(self.config.file_size_bytes / MIB) / elapsed_seconds,
            avg_latency_ms=elapsed_ms / total_ops,
            iops=total_ops / elapsed_seconds,
            timestamp=finished,
        )

        self.logger.info(
            f"Run {run_id} {test_type.value}: {result.throughput_mbps:.2f} MB/s, "
            f"{result.iops:.0f} IOPS, {result.avg_latency_ms:.4f} ms avg latency"
        )
        return result

    def _prepare_for_read(self, fd: int, rng: np.random.Generator) -> None:
        """Fill the file with data up to the configured size (untimed)."""
        file_size = self.config.file_size_bytes
        current = os.fstat(fd).st_size
        if current >= file_size:
            return

        self.logger.debug(f"Preparing {file_size - current} bytes of read data")
        offset = current
        while offset < file_size:
            chunk = min(_PREPARE_CHUNK, file_size - offset)
            offset += os.pwrite(fd, rng.bytes(chunk), offset)
        os.fsync(fd)

        # Drop the freshly written pages so reads reach the device
        if hasattr(os, 'posix_fadvise'):
            os.posix_fadvise(fd, 0, 0, os.POSIX_FADV_DONTNEED)

    def _drive_sync(self, streams: List[IOStream]) -> None:
        """One pool thread per stream, gated to queue_depth in-flight operations."""
        gate = threading.BoundedSemaphore(self.config.queue_depth)
        abort = threading.Event()

        def drive(stream: IOStream) -> None:
            try:
                for _ in range(stream.block_count):
                    if abort.is_set():
                        return
                    with gate:
                        stream.perform_op()
            except BaseException:
                abort.set()
                raise

        futures = [self.pool.submit(drive, stream) for stream in streams]
        try:
            wait(futures, return_when=FIRST_EXCEPTION)
        finally:
            if not all(f.done() for f in futures):
                abort.set()
            # Every worker must be idle before the descriptor is closed
            wait(futures)

        for future in futures:
            future.result()

    async def _drive_async(self, streams: List[IOStream]) -> None:
        """Streams as tasks on an event loop; each operation runs on the pool."""
        loop = asyncio.get_running_loop()
        gate = asyncio.Semaphore(self.config.queue_depth)
        abort = asyncio.Event()

        async def drive(stream: IOStream) -> None:
            try:
                for _ in range(stream.block_count):
                    if abort.is_set():
                        return
                    async with gate:
                        await loop.run_in_executor(self.pool, stream.perform_op)
            except BaseException:
                abort.set()
                raise

        outcomes = await asyncio.gather(*(drive(stream) for stream in streams), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

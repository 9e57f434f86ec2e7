"""Benchmark coordinator for orchestrating a session of runs."""

from typing import List, Optional, Tuple

from .config import BenchmarkConfig, TestType, enum_names
from .executor import WorkloadExecutor
from .monitoring import MetricsSnapshot, ResourceSampler
from .paths import BenchmarkPaths
from .results import BenchmarkResult
from ..utils.logging import LoggerMixin


class BenchmarkCoordinator(LoggerMixin):
    """Runs every configured test type in order and collects the results."""

    def __init__(
        self,
        config: BenchmarkConfig,
        paths: Optional[BenchmarkPaths] = None,
        executor: Optional[WorkloadExecutor] = None,
        sampler: Optional[ResourceSampler] = None
    ):
        super().__init__()
        self.config = config
        self.paths = paths or BenchmarkPaths(config.test_directory, config.session_id)
        self.executor = executor or WorkloadExecutor(config, self.paths)
        self.sampler = sampler

    def run_all(self) -> Tuple[BenchmarkResult, ...]:
        """Run warmups and measured iterations for every test type.

        Run ids start at 1 and increase across the whole session. Warmups
        do not consume run ids and their results are discarded.

        Returns:
            Measured results in execution order

        Raises:
            DirectoryUnusable: test directory cannot be created or written
            InsufficientSpace: not enough room for one test file
            BenchmarkIOError: a run failed; earlier results are not returned
        """
        config = self.config
        self.paths.ensure_test_directory()
        self.paths.validate_free_space(config.file_size_bytes)

        self.logger.info(self.paths.header())
        self.logger.info(
            f"Test types: {enum_names(config.test_types)} | "
            f"{config.iterations} iteration(s), {config.warmup_iterations} warmup(s) each"
        )

        results: List[BenchmarkResult] = []
        next_run_id = 1

        if self.sampler is not None:
            self.sampler.start(config.metrics_interval)

        try:
            for test_type in config.test_types:
                self._run_warmups(test_type, next_run_id)

                for iteration in range(1, config.iterations + 1):
                    self.logger.info(
                        f"Run {next_run_id}: {test_type.value} iteration {iteration}/{config.iterations}"
                    )
                    result = self.executor.execute(next_run_id, test_type)
                    results.append(result)

                    if not config.retain_test_files:
                        self.paths.remove_file(self.paths.test_file_path(next_run_id, test_type.descriptor))

                    if result.elapsed_seconds > config.max_per_test_target:
                        self.logger.warning(
                            f"Run {next_run_id} took {result.elapsed_seconds:.1f}s, over the "
                            f"{config.max_per_test_target:.0f}s target; consider a smaller file size"
                        )
                    next_run_id += 1
        except Exception as e:
            self.logger.error(f"Benchmark failed: {e}")
            raise
        finally:
            if self.sampler is not None:
                self.sampler.stop()
            self.executor.close()

        self.logger.info(f"Benchmark completed: {len(results)} run(s)")
        return tuple(results)

    def _run_warmups(self, test_type: TestType, next_run_id: int) -> None:
        if self.config.warmup_iterations == 0:
            return

        warmup_path = self.paths.temp_file_path(next_run_id, f"{test_type.descriptor} warmup")
        try:
            for warmup in range(1, self.config.warmup_iterations + 1):
                result = self.executor.execute(next_run_id, test_type, warmup_path)
                self.logger.info(
                    f"Warmup {warmup}/{self.config.warmup_iterations} {test_type.value}: "
                    f"{result.throughput_mbps:.2f} MB/s (discarded)"
                )
        finally:
            self.paths.remove_file(warmup_path)

    def snapshots(self) -> Tuple[MetricsSnapshot, ...]:
        """Snapshots collected by the sampler, if one is attached."""
        if self.sampler is None:
            return ()
        return self.sampler.snapshots()

"""Core components of the storage benchmark."""

from .config import BenchmarkConfig, ConfigLoader, IoMode, ReportFormat, TestType
from .coordinator import BenchmarkCoordinator
from .errors import (
    BenchmarkError,
    BenchmarkIOError,
    ConfigurationError,
    DirectoryUnusable,
    InsufficientSpace,
    MeasurementError,
)
from .executor import WorkloadExecutor
from .monitoring import MetricsSnapshot, ResourceSampler
from .paths import BenchmarkPaths
from .results import BenchmarkResult, ReportGenerator

__all__ = [
    "BenchmarkConfig",
    "ConfigLoader",
    "IoMode",
    "ReportFormat",
    "TestType",
    "BenchmarkCoordinator",
    "BenchmarkError",
    "BenchmarkIOError",
    "ConfigurationError",
    "DirectoryUnusable",
    "InsufficientSpace",
    "MeasurementError",
    "WorkloadExecutor",
    "MetricsSnapshot",
    "ResourceSampler",
    "BenchmarkPaths",
    "BenchmarkResult",
    "ReportGenerator",
]

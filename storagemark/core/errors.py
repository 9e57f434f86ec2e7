"""Exception hierarchy for the storage benchmark."""


class BenchmarkError(Exception):
    """Base class for every error raised by the benchmark."""
    pass


class ConfigurationError(BenchmarkError, ValueError):
    """Configuration source could not be turned into a BenchmarkConfig."""
    pass


class DirectoryUnusable(BenchmarkError):
    """Test directory is not a directory or cannot be written to."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Test directory unusable: {path} ({reason})")


class InsufficientSpace(BenchmarkError):
    """Filesystem backing the test directory is too small for a run."""

    def __init__(self, path, required_bytes: int, available_bytes: int):
        self.path = path
        self.required_bytes = required_bytes
        self.available_bytes = available_bytes
        super().__init__(
            f"Insufficient free space on {path}: required ~{required_bytes} bytes, "
            f"available {available_bytes} bytes"
        )


class BenchmarkIOError(BenchmarkError):
    """I/O failure during a run. Never retried."""

    def __init__(self, message: str, path=None, run_id=None):
        self.path = path
        self.run_id = run_id
        super().__init__(message)


class MeasurementError(BenchmarkError):
    """Run finished but its timing cannot produce finite metrics."""
    pass

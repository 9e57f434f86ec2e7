"""Test directory management, free-space checks and deterministic file naming.

Every file a session creates lives directly under one base directory and
carries the session id in its name:

    run-001.seq_write.<session>.bin     data file of run 1
    run-002.rand_read.warmup.<session>.tmp
    report.<session>.json
    charts-<session>/
"""

import os
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .errors import DirectoryUnusable, InsufficientSpace
from ..utils.logging import LoggerMixin

FREE_SPACE_MARGIN = 1.05
RUN_FILE_PREFIX = "run-"

_WHITESPACE = re.compile(r'\s+')
_RUN_FILE = re.compile(r'^run-\d{3,}\..+\.(bin|tmp)$')


class BenchmarkPaths(LoggerMixin):
    """Derives session-scoped paths and guards the test directory."""

    def __init__(self, base_dir: Union[str, Path], session_id: str):
        super().__init__()
        if not session_id:
            raise ValueError("session_id must not be empty")
        self.base_dir = Path(base_dir)
        self.session_id = session_id

    def ensure_test_directory(self) -> None:
        """Create the base directory if needed and prove it is writable."""
        if not self.base_dir.exists():
            try:
                self.base_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryUnusable(self.base_dir, f"cannot create: {e}") from e
            self.logger.info(f"Created test directory {self.base_dir}")

        if not self.base_dir.is_dir():
            raise DirectoryUnusable(self.base_dir, "exists but is not a directory")

        probe = self.base_dir / f".write_probe_{self.session_id}"
        try:
            with open(probe, 'wb') as f:
                f.write(b'\0')
        except OSError as e:
            raise DirectoryUnusable(self.base_dir, f"write probe failed: {e}") from e
        finally:
            try:
                probe.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                # The directory is still usable
                self.logger.debug(f"Could not remove write probe {probe}: {e}")

    def validate_free_space(self, required_bytes: int) -> None:
        """Fail unless the filesystem has required_bytes plus a 5% margin free."""
        usage = shutil.disk_usage(self.base_dir)
        required_with_margin = int(required_bytes * FREE_SPACE_MARGIN)
        if usage.free < required_bytes * FREE_SPACE_MARGIN:
            raise InsufficientSpace(self.base_dir, required_with_margin, usage.free)
        self.logger.debug(
            f"Free space check passed: {usage.free} bytes available, "
            f"{required_with_margin} required"
        )

    def test_file_path(self, run_id: int, descriptor: Optional[str]) -> Path:
        """Data file for a run, e.g. ``run-001.seq_write.<session>.bin``."""
        return self._run_file(run_id, descriptor, "data", "bin")

    def temp_file_path(self, run_id: int, descriptor: Optional[str]) -> Path:
        """Scratch file for a run, e.g. ``run-002.seq_read.warmup.<session>.tmp``."""
        return self._run_file(run_id, descriptor, "temp", "tmp")

    def _run_file(self, run_id: int, descriptor: Optional[str], fallback: str, extension: str) -> Path:
        safe_desc = fallback if descriptor is None else _WHITESPACE.sub('.', descriptor.strip())
        return self.base_dir / f"{RUN_FILE_PREFIX}{run_id:03d}.{safe_desc}.{self.session_id}.{extension}"

    def report_file_path(self, extension: str) -> Path:
        """Report artifact path, e.g. ``report.<session>.json``."""
        ext = extension[1:] if extension.startswith('.') else extension
        return self.base_dir / f"report.{self.session_id}.{ext}"

    @property
    def charts_dir(self) -> Path:
        return self.base_dir / f"charts-{self.session_id}"

    def ensure_charts_dir(self) -> Path:
        self.charts_dir.mkdir(parents=True, exist_ok=True)
        return self.charts_dir

    def remove_file(self, path: Union[str, Path]) -> bool:
        """Best-effort delete of a single file. Returns True if it was removed."""
        try:
            Path(path).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.warning(f"Could not delete {path}: {e}")
            return False

    def is_session_file(self, name: str) -> bool:
        return self.session_id in name or _RUN_FILE.match(name) is not None

    def cleanup_session_files(self, retain: bool) -> int:
        """Delete files created by this session. Skipped entirely when retain is set.

        Matches names containing the session id or following the run file
        naming scheme, in the base directory and the session charts
        directory only. Failures are logged, never raised.
        """
        if retain:
            self.logger.info(f"Retaining test files in {self.base_dir}")
            return 0

        if not self.base_dir.is_dir():
            return 0

        removed = 0
        try:
            for directory in (self.base_dir, self.charts_dir):
                if not directory.is_dir():
                    continue
                with os.scandir(directory) as entries:
                    for entry in entries:
                        if entry.is_file(follow_symlinks=False) and self.is_session_file(entry.name):
                            if self.remove_file(entry.path):
                                removed += 1
        except OSError as e:
            self.logger.warning(f"Cleanup of {self.base_dir} stopped early: {e}")

        self.logger.info(f"Removed {removed} session files from {self.base_dir}")
        return removed

    def header(self) -> str:
        """Human-friendly header line for logs."""
        timestamp = datetime.now(timezone.utc).isoformat()
        return f"[storagemark] session={self.session_id} dir={self.base_dir} ts={timestamp}"

"""Configuration management for the storage benchmark."""

import math
import re
import uuid
import yaml
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Type, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ConfigurationError
from ..utils.env import Env

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

MIN_FILE_SIZE = 1 * GIB
MAX_FILE_SIZE = 10 * GIB
MIN_BLOCK_SIZE = 4 * KIB
MAX_BLOCK_SIZE = 1 * MIB

ENV_PREFIX = "PY_SM_"


class TestType(str, Enum):
    """Benchmark workload types."""
    __test__ = False

    SEQ_READ = "SEQ_READ"
    SEQ_WRITE = "SEQ_WRITE"
    RAND_READ = "RAND_READ"
    RAND_WRITE = "RAND_WRITE"

    @property
    def is_write(self) -> bool:
        return self in (TestType.SEQ_WRITE, TestType.RAND_WRITE)

    @property
    def is_random(self) -> bool:
        return self in (TestType.RAND_READ, TestType.RAND_WRITE)

    @property
    def descriptor(self) -> str:
        """Short name used in data file names."""
        return self.value.lower()


class IoMode(str, Enum):
    """How a run dispatches its I/O operations."""
    SYNC = "SYNC"
    ASYNC = "ASYNC"


class ReportFormat(str, Enum):
    """Report output formats."""
    CSV = "CSV"
    JSON = "JSON"
    HTML = "HTML"


DEFAULT_TEST_TYPES = (TestType.SEQ_READ, TestType.SEQ_WRITE)
DEFAULT_REPORT_FORMATS = (ReportFormat.CSV, ReportFormat.JSON)

_SIZE_PATTERN = re.compile(r'^\s*(\d+)\s*([kmgt]?)(?:i?b)?\s*$', re.IGNORECASE)
_SIZE_UNITS = {'': 1, 'k': KIB, 'm': MIB, 'g': GIB, 't': 1024 * GIB}


def parse_size(value: Union[int, str]) -> int:
    """Parse a byte count such as ``4096``, ``"4k"``, ``"128KiB"`` or ``"2GB"``.

    Suffixes always use binary multipliers.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid size: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Size must be a whole number of bytes: {value!r}")
        return int(value)
    if isinstance(value, str):
        match = _SIZE_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid size: {value!r}")
        number, unit = match.groups()
        return int(number) * _SIZE_UNITS[unit.lower()]
    raise ValueError(f"Invalid size: {value!r}")


def default_session_id() -> str:
    return "sm-" + uuid.uuid4().hex[:12]


def _coerce_enum(enum_cls: Type[Enum], value: Any) -> Any:
    """Accept enum members or their names in any case."""
    if isinstance(value, str):
        return enum_cls(value.strip().upper())
    return value


def _coerce_enum_sequence(enum_cls: Type[Enum], value: Any) -> Tuple:
    if value is None:
        return ()
    if isinstance(value, (str, Enum)):
        value = str(value.value if isinstance(value, Enum) else value).split(',')

    members = []
    for item in value:
        if isinstance(item, str) and not item.strip():
            continue
        member = _coerce_enum(enum_cls, item)
        # Keep first occurrence, preserve configured order
        if member not in members:
            members.append(member)
    return tuple(members)


class BenchmarkConfig(BaseModel):
    """Immutable parameter set for one benchmark session."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Target
    test_directory: Path = Field(alias="testDirectory", default=Path("./storagemark-tests"))
    test_types: Tuple[TestType, ...] = Field(alias="testTypes", default=DEFAULT_TEST_TYPES)

    # Workload
    file_size_bytes: int = Field(alias="fileSizeBytes", default=5 * GIB, ge=MIN_FILE_SIZE, le=MAX_FILE_SIZE)
    block_size_bytes: int = Field(alias="blockSizeBytes", default=128 * KIB, ge=MIN_BLOCK_SIZE, le=MAX_BLOCK_SIZE)
    threads: int = Field(default=4, ge=1, le=32)
    iterations: int = Field(default=5, ge=3, le=10)
    warmup_iterations: int = Field(alias="warmupIterations", default=1, ge=0, le=5)
    io_mode: IoMode = Field(alias="ioMode", default=IoMode.SYNC)
    queue_depth: int = Field(alias="queueDepth", default=8, ge=1)
    random_seed: Optional[int] = Field(alias="randomSeed", default=None)

    # Safety
    allow_raw_device_access: bool = Field(alias="allowRawDeviceAccess", default=False)
    retain_test_files: bool = Field(alias="retainTestFiles", default=False)

    # Monitoring / logging
    verbosity: int = Field(default=1, ge=0, le=2)
    collect_system_metrics: bool = Field(alias="collectSystemMetrics", default=True)
    metrics_interval: float = Field(alias="metricsInterval", default=0.5, ge=0.1, le=5.0,
                                    description="Sampling interval in seconds")

    # Reporting
    report_formats: Tuple[ReportFormat, ...] = Field(alias="reportFormats", default=DEFAULT_REPORT_FORMATS)
    embed_charts: bool = Field(alias="embedCharts", default=False)

    # Soft per-run duration guideline in seconds
    max_per_test_target: float = Field(alias="maxPerTestTarget", default=600.0, gt=0)

    session_id: str = Field(alias="sessionId", default_factory=default_session_id,
                            pattern=r'^[A-Za-z0-9._-]+$')

    @field_validator('test_types', mode='before')
    @classmethod
    def parse_test_types(cls, v):
        types = _coerce_enum_sequence(TestType, v)
        return types or DEFAULT_TEST_TYPES

    @field_validator('report_formats', mode='before')
    @classmethod
    def parse_report_formats(cls, v):
        return _coerce_enum_sequence(ReportFormat, v)

    @field_validator('io_mode', mode='before')
    @classmethod
    def parse_io_mode(cls, v):
        return _coerce_enum(IoMode, v)

    @field_validator('file_size_bytes', 'block_size_bytes', mode='before')
    @classmethod
    def parse_sizes(cls, v):
        return parse_size(v)

    @model_validator(mode='after')
    def check_cross_field_rules(self) -> 'BenchmarkConfig':
        if self.queue_depth > self.threads * 2:
            raise ValueError("queue_depth must be >= 1 and <= threads * 2")
        if ReportFormat.CSV not in self.report_formats or ReportFormat.JSON not in self.report_formats:
            raise ValueError("report_formats must include both CSV and JSON; HTML is optional")
        if self.embed_charts and ReportFormat.HTML not in self.report_formats:
            raise ValueError("embed_charts requires the HTML report format")
        return self

    @property
    def blocks_per_file(self) -> int:
        """Total blocks per file, rounded up."""
        return math.ceil(self.file_size_bytes / self.block_size_bytes)

    @property
    def has_random_workloads(self) -> bool:
        return any(t.is_random for t in self.test_types)

    @property
    def has_sequential_workloads(self) -> bool:
        return any(not t.is_random for t in self.test_types)

    @property
    def wants_html(self) -> bool:
        return ReportFormat.HTML in self.report_formats


class ConfigLoader:
    """Configuration loader utility."""

    @staticmethod
    def load_benchmark(file_path: Union[str, Path]) -> BenchmarkConfig:
        """Load benchmark configuration from YAML file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {file_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {file_path} must contain a mapping")
        return BenchmarkConfig(**data)

    @staticmethod
    def save_config(config: BaseModel, file_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        with open(file_path, 'w', encoding='utf-8') as f:
            data = config.model_dump(by_alias=True, exclude_none=True, mode='json')
            yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)


# (field name, env suffix, reader)
_ENV_FIELDS = (
    ('test_directory', 'DIRECTORY', lambda key: Env.get(key, str, None)),
    ('test_types', 'TEST_TYPES', lambda key: Env.get_list(key)),
    ('file_size_bytes', 'FILE_SIZE', lambda key: Env.get(key, str, None)),
    ('block_size_bytes', 'BLOCK_SIZE', lambda key: Env.get(key, str, None)),
    ('threads', 'THREADS', lambda key: Env.get_long(key, None)),
    ('iterations', 'ITERATIONS', lambda key: Env.get_long(key, None)),
    ('warmup_iterations', 'WARMUP', lambda key: Env.get_long(key, None)),
    ('io_mode', 'IO_MODE', lambda key: Env.get(key, str, None)),
    ('queue_depth', 'QUEUE_DEPTH', lambda key: Env.get_long(key, None)),
    ('random_seed', 'SEED', lambda key: Env.get_long(key, None)),
    ('verbosity', 'VERBOSITY', lambda key: Env.get_long(key, None)),
    ('metrics_interval', 'METRICS_INTERVAL', lambda key: Env.get_double(key, None)),
    ('session_id', 'SESSION_ID', lambda key: Env.get(key, str, None)),
)

_ENV_FLAGS = (
    ('retain_test_files', 'RETAIN'),
    ('collect_system_metrics', 'COLLECT_METRICS'),
)


def load_env_config(base: Optional[BenchmarkConfig] = None) -> BenchmarkConfig:
    """Load configuration from PY_SM_* environment variables.

    Only variables that are set override ``base`` (or the defaults).
    """
    base = base or BenchmarkConfig()
    overrides: Dict[str, Any] = {}

    for field_name, env_name, reader in _ENV_FIELDS:
        value = reader(ENV_PREFIX + env_name)
        if value is not None:
            overrides[field_name] = value

    for field_name, env_name in _ENV_FLAGS:
        current = getattr(base, field_name)
        value = Env.get_bool(ENV_PREFIX + env_name, current)
        if value != current:
            overrides[field_name] = value

    return merge_configs(base, overrides)


def merge_configs(
    base: BenchmarkConfig,
    override: Union[BenchmarkConfig, Dict[str, Any]]
) -> BenchmarkConfig:
    """Merge two configurations, with override taking precedence.

    For a config override only explicitly set fields count; for a dict,
    ``None`` values are ignored. The merged result is validated again.
    """
    if isinstance(override, BenchmarkConfig):
        override_dict = override.model_dump(exclude_unset=True)
    else:
        override_dict = {k: v for k, v in override.items() if v is not None}

    data = base.model_dump()
    data.update(override_dict)
    return BenchmarkConfig(**data)


def enum_names(members: Iterable[Enum]) -> str:
    """Comma-separated member values, for display."""
    return ", ".join(m.value for m in members)

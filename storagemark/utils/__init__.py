"""Utilities for the storage benchmark."""

from .logging import setup_logging, get_logger, LoggerMixin, verbosity_to_level
from .partition import BlockRange, partition_blocks
from .timer import Timer

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggerMixin",
    "verbosity_to_level",
    "BlockRange",
    "partition_blocks",
    "Timer",
]
